"""Debounced, single-flight outbound sync."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from neutab.core.async_utils import raise_if_cancelled, spawn_background
from neutab.core.logging_utils import generate_correlation_id
from neutab.domain.models.sync import PendingPushState, SyncAction, SyncStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from neutab.application.sync.guards import InFlightGuard, SuppressionWindow
    from neutab.application.sync.protocols import CloudSyncGateway, PreferencesReader
    from neutab.application.sync.status_recorder import SyncStatusRecorder

logger = logging.getLogger(__name__)

DEFAULT_PUSH_DEBOUNCE_MS = 2500


class PushScheduler:
    """Coalesce bursts of local changes into one trailing-edge push.

    Every ``schedule_push()`` restarts the debounce timer, so a burst produces a
    single push timed from its last call.
    """

    def __init__(
        self,
        *,
        preferences: PreferencesReader,
        gateway: CloudSyncGateway,
        guard: InFlightGuard,
        suppression: SuppressionWindow,
        recorder: SyncStatusRecorder,
        debounce_ms: int = DEFAULT_PUSH_DEBOUNCE_MS,
        state: PendingPushState | None = None,
        is_active: Callable[[], bool] | None = None,
    ) -> None:
        self._preferences = preferences
        self._gateway = gateway
        self._guard = guard
        self._suppression = suppression
        self._recorder = recorder
        self._debounce_ms = debounce_ms
        self.state = state or PendingPushState()
        self._is_active = is_active or (lambda: True)
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def mark_upload_icons(self) -> None:
        self.state.upload_icons_on_next_push = True

    def schedule_push(self) -> bool:
        """Arm (or re-arm) the debounce timer. Must be called on the event loop.

        Returns:
            True when a push is now pending, False when the request was dropped.
        """
        prefs = self._preferences.read()
        if not prefs.is_complete:
            logger.debug("cloud_sync_push_skipped", extra={"reason": "config_incomplete"})
            return False
        if self._suppression.is_active():
            logger.debug("cloud_sync_push_skipped", extra={"reason": "suppressed_after_pull"})
            return False

        self.state.pending = True
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._debounce_ms / 1000, self._on_timer)
        return True

    def cancel(self) -> None:
        """Drop the armed timer. A push already in flight keeps running."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait_idle(self) -> None:
        """Wait for pushes started by the timer to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_timer(self) -> None:
        self._timer = None
        spawn_background(self.run_push(), self._tasks, name="cloud_sync_push")

    async def run_push(self) -> bool:
        """Perform the pending push if it is still wanted.

        Returns:
            True when the push collaborator was called (whatever its outcome).
        """
        prefs = self._preferences.read()
        if not prefs.is_complete:
            logger.debug("cloud_sync_push_dropped", extra={"reason": "config_incomplete"})
            return False
        if self._guard.held:
            logger.debug(
                "cloud_sync_push_dropped",
                extra={"reason": "in_flight", "held_by": self._guard.holder},
            )
            return False
        if self._suppression.is_active():
            logger.debug("cloud_sync_push_dropped", extra={"reason": "suppressed_after_pull"})
            return False
        if not self.state.pending:
            return False

        # Cleared before the network call so changes made meanwhile schedule a fresh push
        self.state.pending = False
        self._guard.try_acquire(str(SyncAction.PUSH))

        cid = generate_correlation_id()
        upload_icons = self.state.upload_icons_on_next_push
        self.state.upload_icons_on_next_push = False
        started = time.perf_counter()
        status = SyncStatus.FAILED

        logger.info("cloud_sync_push_started", extra={"cid": cid, "upload_icons": upload_icons})
        try:
            # Inside the try so a failed read still releases the guard
            language = self._preferences.language()
            await self._gateway.push(
                prefs.server_url, prefs.auth_code, language, upload_icons=upload_icons
            )
            status = SyncStatus.SUCCESS
            logger.info(
                "cloud_sync_push_completed",
                extra={
                    "cid": cid,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                    "active": self._is_active(),
                },
            )
        except Exception as exc:
            raise_if_cancelled(exc)
            logger.warning(
                "cloud_sync_push_failed",
                extra={"cid": cid, "error": str(exc), "error_type": type(exc).__name__},
            )
        finally:
            self._guard.release()

        await self._recorder.record(SyncAction.PUSH, status)
        return True
