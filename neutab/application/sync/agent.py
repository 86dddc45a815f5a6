"""Cloud sync agent: turns storage and preference events into pushes and pulls."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from neutab.application.sync.guards import InFlightGuard, SuppressionWindow
from neutab.application.sync.pull_scheduler import PullScheduler
from neutab.application.sync.push_scheduler import PushScheduler
from neutab.application.sync.status_recorder import SyncStatusRecorder
from neutab.core.async_utils import spawn_background
from neutab.core.time_utils import SYSTEM_CLOCK
from neutab.domain.events.sync_events import StorageChanged, SyncPreferencesChanged
from neutab.domain.models.sync import StorageArea
from neutab.domain.services.change_classifier import (
    is_groups_key,
    is_icon_key,
    is_relevant_sync_key,
)

if TYPE_CHECKING:
    from neutab.application.sync.protocols import CloudSyncGateway, PreferencesReader
    from neutab.config import CloudSyncConfig
    from neutab.core.time_utils import Clock
    from neutab.domain.models.sync import SyncPreferences
    from neutab.infrastructure.messaging.event_bus import EventBus
    from neutab.infrastructure.persistence.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class CloudSyncAgent:
    """Per-instance owner of the push/pull schedulers.

    Push and pull share one ``InFlightGuard`` and one ``SuppressionWindow``. The
    pull cooldown lives in ``store`` and is therefore shared with every other
    agent using the same store.
    """

    def __init__(
        self,
        *,
        preferences: PreferencesReader,
        gateway: CloudSyncGateway,
        store: KeyValueStore,
        bus: EventBus,
        config: CloudSyncConfig,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self._preferences = preferences
        self._bus = bus
        self._active = False
        self._subscribed = False
        self._last_fingerprint: tuple[bool, bool, str, str] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

        self.guard = InFlightGuard()
        self.suppression = SuppressionWindow(clock)
        self.recorder = SyncStatusRecorder(store, bus)
        self.push = PushScheduler(
            preferences=preferences,
            gateway=gateway,
            guard=self.guard,
            suppression=self.suppression,
            recorder=self.recorder,
            debounce_ms=config.push_debounce_ms,
            is_active=self.is_active,
        )
        self.pull = PullScheduler(
            preferences=preferences,
            gateway=gateway,
            guard=self.guard,
            suppression=self.suppression,
            recorder=self.recorder,
            store=store,
            clock=clock,
            on_pulled=self.push.mark_upload_icons,
            cooldown_ms=config.pull_cooldown_ms,
            suppress_push_ms=config.suppress_push_after_pull_ms,
            is_active=self.is_active,
        )

    def is_active(self) -> bool:
        return self._active

    async def start(self) -> None:
        """Subscribe to change events and run the initial preference check."""
        if self._active:
            logger.warning("cloud_sync_agent_already_started")
            return
        self._active = True
        if not self._subscribed:
            self._bus.subscribe(StorageChanged, self.on_storage_changed)
            self._bus.subscribe(SyncPreferencesChanged, self.on_preferences_changed)
            self._subscribed = True
        logger.info("cloud_sync_agent_started")
        self.check_preferences()

    async def close(self, *, wait: bool = False) -> None:
        """Stop reacting to events. In-flight pushes/pulls are never aborted.

        Args:
            wait: Also wait for operations already in flight to settle.
        """
        if self._subscribed:
            self._bus.unsubscribe(StorageChanged, self.on_storage_changed)
            self._bus.unsubscribe(SyncPreferencesChanged, self.on_preferences_changed)
            self._subscribed = False
        self.push.cancel()
        self._active = False
        logger.info("cloud_sync_agent_stopped", extra={"pending_tasks": len(self._tasks)})
        if wait:
            await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until no pull or push started by this agent is still running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.push.wait_idle()

    def check_preferences(self, prefs: SyncPreferences | None = None) -> bool:
        """Edge-triggered pull: fire only when preferences changed into a complete state.

        Called from ``SyncPreferencesChanged`` events and, as a fallback, from the
        periodic poll job.

        Returns:
            True when a pull was started.
        """
        if not self._active:
            return False
        current = prefs if prefs is not None else self._preferences.read()
        fingerprint = current.fingerprint()
        if fingerprint == self._last_fingerprint:
            return False
        self._last_fingerprint = fingerprint
        if not current.is_complete:
            logger.debug(
                "sync_preferences_changed",
                extra={"sync_enabled": current.sync_enabled, "complete": False},
            )
            return False

        logger.info("sync_preferences_enabled", extra={"has_server_url": True})
        self.push.mark_upload_icons()
        spawn_background(self.pull.run_pull(), self._tasks, name="cloud_sync_pull")
        return True

    async def on_preferences_changed(self, event: SyncPreferencesChanged) -> None:
        self.check_preferences(event.preferences)

    async def on_storage_changed(self, event: StorageChanged) -> None:
        """Route one storage-change notification to at most one scheduled push."""
        if not self._active:
            return
        prefs = self._preferences.read()
        if not prefs.auto_sync_active:
            return

        if event.area is StorageArea.LOCAL:
            for key in sorted(event.changed_keys):
                if is_icon_key(key):
                    self.push.mark_upload_icons()
                    self.push.schedule_push()
                    return
                if is_groups_key(key):
                    self.push.schedule_push()
                    return
            return

        if event.area is StorageArea.SYNC:
            if any(is_relevant_sync_key(key) for key in event.changed_keys):
                self.push.schedule_push()
