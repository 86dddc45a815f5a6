"""Decide which storage mutations should trigger a cloud push."""

from __future__ import annotations

from neutab.domain.settings_defaults import (
    CHUNK_MARKER,
    DEFAULT_SETTINGS,
    GROUPS_KEY,
    GROUPS_TIMESTAMP_KEY,
    ICON_KEY_PREFIX,
    LEGACY_APPS_KEY,
)

# Derived or bookkeeping keys that live in the sync area but carry nothing to push
_EXCLUDED_SYNC_KEYS: frozenset[str] = frozenset({GROUPS_TIMESTAMP_KEY, LEGACY_APPS_KEY})

# Search settings are stored outside DEFAULT_SETTINGS but are synced
_EXTRA_SYNC_KEYS: frozenset[str] = frozenset(
    {"searchEngines", "currentEngine", "searchOpenInNewWindow"}
)


def is_relevant_sync_key(key: str) -> bool:
    """Return True when a change to ``key`` in the sync area should be pushed."""
    if not key:
        return False
    if CHUNK_MARKER in key:
        return False
    if key in _EXCLUDED_SYNC_KEYS:
        return False
    return key in DEFAULT_SETTINGS or key in _EXTRA_SYNC_KEYS


def is_icon_key(key: str) -> bool:
    return key.startswith(ICON_KEY_PREFIX)


def is_groups_key(key: str) -> bool:
    return key == GROUPS_KEY
