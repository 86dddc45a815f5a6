"""Value objects for the cloud sync scheduler."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class SyncAction(StrEnum):
    PUSH = "push"
    PULL = "pull"


class SyncStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"


class StorageArea(StrEnum):
    """Namespaces a storage-change notification can originate from."""

    LOCAL = "local"
    SYNC = "sync"


@dataclass(frozen=True, slots=True)
class SyncPreferences:
    """Snapshot of the user's cloud sync preferences.

    Re-read on every scheduling decision; never cached beyond one decision.
    """

    sync_enabled: bool = False
    auto_sync_enabled: bool = False
    server_url: str = ""
    auth_code: str = ""

    @property
    def auto_sync_active(self) -> bool:
        return self.sync_enabled and self.auto_sync_enabled

    @property
    def is_complete(self) -> bool:
        """True when automatic sync has everything it needs to talk to the server."""
        return self.auto_sync_active and bool(self.server_url) and bool(self.auth_code)

    def fingerprint(self) -> tuple[bool, bool, str, str]:
        return (self.sync_enabled, self.auto_sync_enabled, self.server_url, self.auth_code)


@dataclass(frozen=True, slots=True)
class SyncStatusRecord:
    """Outcome of the most recent push or pull."""

    action: SyncAction
    status: SyncStatus
    timestamp: str

    def to_dict(self) -> dict[str, str]:
        return {"action": str(self.action), "status": str(self.status), "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncStatusRecord:
        return cls(
            action=SyncAction(data["action"]),
            status=SyncStatus(data["status"]),
            timestamp=str(data["timestamp"]),
        )


@dataclass(slots=True)
class PendingPushState:
    """Mutable push bookkeeping owned by a single ``PushScheduler``."""

    pending: bool = False
    # Starts True so the first push of a session also uploads icons
    upload_icons_on_next_push: bool = True
