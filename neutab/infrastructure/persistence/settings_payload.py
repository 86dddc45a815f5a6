"""Sync payload source/sink over the key-value state store.

Settings values are stored JSON-encoded under their setting name; custom
icons are stored as data URLs under ``icon_<app id>``.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from neutab.adapters.cloud_sync.models import BackupPayload
from neutab.core.time_utils import utc_now_iso
from neutab.domain.events.sync_events import StorageChanged
from neutab.domain.models.sync import StorageArea
from neutab.domain.settings_defaults import DEFAULT_SETTINGS, GROUPS_KEY, ICON_KEY_PREFIX

if TYPE_CHECKING:
    from neutab.infrastructure.messaging.event_bus import EventBus
    from neutab.infrastructure.persistence.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

SEARCH_SETTING_KEYS = ("searchEngines", "currentEngine", "searchOpenInNewWindow")


class KeyValueSyncPayloadStore:
    """Builds push payloads from, and applies pulled payloads to, a ``KeyValueStore``.

    Writes made while applying a pull are announced as ``StorageChanged`` so
    they flow through the same path as user edits; the post-pull suppression
    window keeps them from being pushed straight back.
    """

    def __init__(self, store: KeyValueStore, bus: EventBus | None = None) -> None:
        self._store = store
        self._bus = bus

    def _read_json(self, key: str, default: Any = None) -> Any:
        raw = self._store.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("settings_value_malformed", extra={"key": key})
            return default

    def _write_json(self, key: str, value: Any) -> None:
        self._store.set(key, json.dumps(value, ensure_ascii=False))

    async def build_payload(self, language: str) -> BackupPayload:
        settings: dict[str, Any] = {
            key: self._read_json(key, default) for key, default in DEFAULT_SETTINGS.items()
        }
        for key in SEARCH_SETTING_KEYS:
            value = self._read_json(key)
            if value is not None:
                settings[key] = value
        if not settings.get("language"):
            settings["language"] = language

        groups = self._read_json(GROUPS_KEY, [])
        settings[GROUPS_KEY] = groups

        custom_icons: dict[str, str] = {}
        for app_id in _iter_app_ids(groups):
            data_url = self._store.get(f"{ICON_KEY_PREFIX}{app_id}")
            if isinstance(data_url, str) and data_url.startswith("data:image/"):
                custom_icons[app_id] = data_url

        return BackupPayload(exported_at=utc_now_iso(), settings=settings, custom_icons=custom_icons)

    async def apply(self, data: dict[str, Any], language: str) -> None:
        settings = data.get("settings") if isinstance(data.get("settings"), dict) else data
        changed_sync: set[str] = set()
        changed_local: set[str] = set()

        for key in (*DEFAULT_SETTINGS.keys(), *SEARCH_SETTING_KEYS):
            if key in settings:
                self._write_json(key, settings[key])
                changed_sync.add(key)

        groups = settings.get(GROUPS_KEY)
        if isinstance(groups, list):
            self._write_json(GROUPS_KEY, groups)
            changed_local.add(GROUPS_KEY)

        icons = data.get("customIcons")
        if isinstance(icons, dict):
            for app_id, data_url in icons.items():
                if isinstance(data_url, str) and data_url.startswith("data:image/"):
                    self._store.set(f"{ICON_KEY_PREFIX}{app_id}", data_url)
                    changed_local.add(f"{ICON_KEY_PREFIX}{app_id}")

        logger.info(
            "sync_payload_applied",
            extra={"settings": len(changed_sync), "local_keys": len(changed_local)},
        )
        await self._announce(StorageArea.SYNC, changed_sync)
        await self._announce(StorageArea.LOCAL, changed_local)

    async def store_icon(self, icon_id: str, data_url: str) -> None:
        key = f"{ICON_KEY_PREFIX}{icon_id}"
        self._store.set(key, data_url)
        await self._announce(StorageArea.LOCAL, {key})

    async def _announce(self, area: StorageArea, keys: set[str]) -> None:
        if self._bus is not None and keys:
            await self._bus.publish(StorageChanged(area=area, changed_keys=frozenset(keys)))


def _iter_app_ids(groups: Any) -> list[str]:
    app_ids: list[str] = []
    if not isinstance(groups, list):
        return app_ids
    for group in groups:
        apps = group.get("apps") if isinstance(group, dict) else None
        if not isinstance(apps, list):
            continue
        for app in apps:
            app_id = app.get("id") if isinstance(app, dict) else None
            if app_id:
                app_ids.append(str(app_id))
    return app_ids
