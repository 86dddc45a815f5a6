"""Persist the outcome of the latest automatic push or pull."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from neutab.core.time_utils import utc_now_iso
from neutab.domain.events.sync_events import SyncStatusUpdated
from neutab.domain.exceptions.domain_exceptions import StateStoreError
from neutab.domain.models.sync import SyncAction, SyncStatus, SyncStatusRecord

if TYPE_CHECKING:
    from neutab.infrastructure.messaging.event_bus import EventBus
    from neutab.infrastructure.persistence.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

# Read by the settings UI
LAST_SYNC_TIME_KEY = "lastSyncTime"
LAST_SYNC_STATUS_KEY = "lastSyncStatus"
LAST_STATUS_RECORD_KEY = "cloudSync_lastStatus"


class SyncStatusRecorder:
    """Overwrites the single latest ``SyncStatusRecord`` and announces it on the bus."""

    def __init__(self, store: KeyValueStore, bus: EventBus | None = None) -> None:
        self._store = store
        self._bus = bus

    async def record(self, action: SyncAction, status: SyncStatus) -> SyncStatusRecord:
        record = SyncStatusRecord(action=action, status=status, timestamp=utc_now_iso())
        await self.write_status(record)
        return record

    async def write_status(self, record: SyncStatusRecord) -> None:
        try:
            self._store.set(LAST_SYNC_TIME_KEY, record.timestamp)
            self._store.set(LAST_SYNC_STATUS_KEY, str(record.status))
            self._store.set(LAST_STATUS_RECORD_KEY, json.dumps(record.to_dict()))
        except StateStoreError as exc:
            logger.warning(
                "sync_status_persist_failed",
                extra={"action": str(record.action), "status": str(record.status), "error": str(exc)},
            )

        logger.info(
            "sync_status_recorded",
            extra={"action": str(record.action), "status": str(record.status)},
        )

        if self._bus is not None:
            await self._bus.publish(SyncStatusUpdated(record=record))

    def read_status(self) -> SyncStatusRecord | None:
        try:
            raw = self._store.get(LAST_STATUS_RECORD_KEY)
        except StateStoreError:
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return SyncStatusRecord.from_dict(data)
        except (ValueError, KeyError, TypeError):
            logger.warning("sync_status_record_malformed", extra={"raw": raw[:200]})
            return None
