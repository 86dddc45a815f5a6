"""Cooldown-limited, single-flight inbound sync."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from neutab.core.async_utils import raise_if_cancelled
from neutab.core.logging_utils import generate_correlation_id
from neutab.domain.exceptions.domain_exceptions import StateStoreError
from neutab.domain.models.sync import SyncAction, SyncStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from neutab.application.sync.guards import InFlightGuard, SuppressionWindow
    from neutab.application.sync.protocols import CloudSyncGateway, PreferencesReader
    from neutab.application.sync.status_recorder import SyncStatusRecorder
    from neutab.core.time_utils import Clock
    from neutab.infrastructure.persistence.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

LAST_AUTO_PULL_AT_KEY = "cloudSync_lastAutoPullAt"

DEFAULT_PULL_COOLDOWN_MS = 60_000
DEFAULT_SUPPRESS_PUSH_AFTER_PULL_MS = 5000


class PullScheduler:
    """Run automatic pulls, at most one per cooldown across every agent sharing ``store``.

    The last-pull timestamp is written before the network call, so a second
    agent checking in the same tick already sees the cooldown.
    """

    def __init__(
        self,
        *,
        preferences: PreferencesReader,
        gateway: CloudSyncGateway,
        guard: InFlightGuard,
        suppression: SuppressionWindow,
        recorder: SyncStatusRecorder,
        store: KeyValueStore,
        clock: Clock,
        on_pulled: Callable[[], None] | None = None,
        cooldown_ms: int = DEFAULT_PULL_COOLDOWN_MS,
        suppress_push_ms: int = DEFAULT_SUPPRESS_PUSH_AFTER_PULL_MS,
        is_active: Callable[[], bool] | None = None,
    ) -> None:
        self._preferences = preferences
        self._gateway = gateway
        self._guard = guard
        self._suppression = suppression
        self._recorder = recorder
        self._store = store
        self._clock = clock
        self._on_pulled = on_pulled
        self._cooldown_ms = cooldown_ms
        self._suppress_push_ms = suppress_push_ms
        self._is_active = is_active or (lambda: True)

    def last_auto_pull_at(self) -> int:
        """Persisted timestamp of the last automatic pull, 0 when unknown or unreadable."""
        try:
            raw = self._store.get(LAST_AUTO_PULL_AT_KEY)
        except StateStoreError as exc:
            logger.warning("cloud_sync_cooldown_read_failed", extra={"error": str(exc)})
            return 0
        try:
            return int(raw or "0")
        except ValueError:
            return 0

    def _cooldown_remaining_ms(self, now_ms: int) -> int:
        last = self.last_auto_pull_at()
        if last <= 0:
            return 0
        return max(0, self._cooldown_ms - (now_ms - last))

    async def run_pull(self) -> bool:
        """Pull from the server if preferences, the guard and the cooldown allow it.

        Returns:
            True when the pull collaborator was called (whatever its outcome).
        """
        prefs = self._preferences.read()
        if not prefs.is_complete:
            logger.debug("cloud_sync_pull_skipped", extra={"reason": "config_incomplete"})
            return False
        if self._guard.held:
            logger.debug(
                "cloud_sync_pull_skipped",
                extra={"reason": "in_flight", "held_by": self._guard.holder},
            )
            return False

        now_ms = self._clock.now_ms()
        remaining = self._cooldown_remaining_ms(now_ms)
        if remaining > 0:
            logger.debug(
                "cloud_sync_pull_skipped",
                extra={"reason": "cooldown", "remaining_ms": remaining},
            )
            return False
        try:
            self._store.set(LAST_AUTO_PULL_AT_KEY, str(now_ms))
        except StateStoreError as exc:
            logger.warning("cloud_sync_cooldown_write_failed", extra={"error": str(exc)})

        self._guard.try_acquire(str(SyncAction.PULL))

        cid = generate_correlation_id()
        started = time.perf_counter()
        status = SyncStatus.FAILED

        logger.info("cloud_sync_pull_started", extra={"cid": cid})
        try:
            # Inside the try so a failed read still releases the guard
            language = self._preferences.language()
            await self._gateway.pull(prefs.server_url, prefs.auth_code, language)
            status = SyncStatus.SUCCESS
            if self._is_active():
                self._suppression.engage(self._suppress_push_ms)
                # The server may lack icons this client already has
                if self._on_pulled is not None:
                    self._on_pulled()
            logger.info(
                "cloud_sync_pull_completed",
                extra={
                    "cid": cid,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                    "suppress_push_until": self._suppression.expires_at_ms,
                },
            )
        except Exception as exc:
            raise_if_cancelled(exc)
            logger.warning(
                "cloud_sync_pull_failed",
                extra={"cid": cid, "error": str(exc), "error_type": type(exc).__name__},
            )
        finally:
            self._guard.release()

        await self._recorder.record(SyncAction.PULL, status)
        return True
