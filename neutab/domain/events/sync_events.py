"""Events exchanged between storage, preferences and the sync agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from neutab.core.time_utils import utc_now
from neutab.domain.models.sync import StorageArea, SyncPreferences, SyncStatusRecord


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    occurred_at: datetime = field(default_factory=utc_now, kw_only=True)

    def __post_init__(self) -> None:
        if not isinstance(self.occurred_at, datetime):
            raise TypeError("occurred_at must be a datetime")


@dataclass(frozen=True)
class StorageChanged(DomainEvent):
    """One or more keys changed in a storage area."""

    area: StorageArea
    changed_keys: frozenset[str]

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "area", StorageArea(self.area))
        object.__setattr__(self, "changed_keys", frozenset(self.changed_keys))


@dataclass(frozen=True)
class SyncPreferencesChanged(DomainEvent):
    """Cloud sync preferences were written; carries the new snapshot."""

    preferences: SyncPreferences


@dataclass(frozen=True)
class SyncStatusUpdated(DomainEvent):
    """A push or pull settled and its outcome was persisted."""

    record: SyncStatusRecord
