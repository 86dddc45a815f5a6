"""Ports used by the sync schedulers.

Keeping these as Protocols isolates the scheduling logic from the concrete
storage and HTTP implementations.
"""

from __future__ import annotations

from typing import Protocol

from neutab.domain.models.sync import SyncPreferences


class PreferencesReader(Protocol):
    def read(self) -> SyncPreferences: ...

    def language(self) -> str: ...


class CloudSyncGateway(Protocol):
    async def pull(self, server_url: str, auth_code: str, language: str) -> None: ...

    async def push(
        self, server_url: str, auth_code: str, language: str, *, upload_icons: bool
    ) -> None: ...
