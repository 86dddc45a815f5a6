"""Ports for producing and consuming sync payloads.

The settings schema is owned by the storage layer; the HTTP client only moves
opaque dictionaries between it and the server.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from neutab.adapters.cloud_sync.models import BackupPayload


class SyncPayloadSource(Protocol):
    async def build_payload(self, language: str) -> BackupPayload: ...


class SyncPayloadSink(Protocol):
    async def apply(self, data: dict[str, Any], language: str) -> None: ...

    async def store_icon(self, icon_id: str, data_url: str) -> None: ...
