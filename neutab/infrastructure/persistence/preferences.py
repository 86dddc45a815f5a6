"""Read cloud sync preferences and the UI language from the state store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from neutab.domain.events.sync_events import SyncPreferencesChanged
from neutab.domain.models.sync import SyncPreferences

if TYPE_CHECKING:
    from neutab.infrastructure.messaging.event_bus import EventBus
    from neutab.infrastructure.persistence.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

SYNC_ENABLED_KEY = "syncEnabled"
AUTO_SYNC_ENABLED_KEY = "autoSyncEnabled"
SERVER_URL_KEY = "syncServerUrl"
AUTH_CODE_KEY = "syncAuthCode"
LANGUAGE_CACHE_KEY = "lang_cache"

SUPPORTED_LANGUAGES = frozenset({"zh", "en"})


class KeyValuePreferencesReader:
    """Preferences and language accessor over a ``KeyValueStore``.

    Flags are stored as the strings ``"true"``/``"false"``.
    """

    def __init__(self, store: KeyValueStore, *, default_language: str = "zh") -> None:
        self._store = store
        self._default_language = default_language

    def read(self) -> SyncPreferences:
        return SyncPreferences(
            sync_enabled=self._store.get(SYNC_ENABLED_KEY) == "true",
            auto_sync_enabled=self._store.get(AUTO_SYNC_ENABLED_KEY) == "true",
            server_url=(self._store.get(SERVER_URL_KEY) or "").strip(),
            auth_code=(self._store.get(AUTH_CODE_KEY) or "").strip(),
        )

    def language(self) -> str:
        cached = self._store.get(LANGUAGE_CACHE_KEY)
        if cached in SUPPORTED_LANGUAGES:
            return cached
        return self._default_language

    async def write(self, prefs: SyncPreferences, *, bus: EventBus | None = None) -> None:
        """Persist ``prefs`` and announce the change so agents react without polling."""
        self._store.set(SYNC_ENABLED_KEY, "true" if prefs.sync_enabled else "false")
        self._store.set(AUTO_SYNC_ENABLED_KEY, "true" if prefs.auto_sync_enabled else "false")
        self._store.set(SERVER_URL_KEY, prefs.server_url.strip())
        self._store.set(AUTH_CODE_KEY, prefs.auth_code.strip())
        logger.info(
            "sync_preferences_written",
            extra={
                "sync_enabled": prefs.sync_enabled,
                "auto_sync_enabled": prefs.auto_sync_enabled,
                "has_server_url": bool(prefs.server_url),
            },
        )
        if bus is not None:
            await bus.publish(SyncPreferencesChanged(preferences=self.read()))
