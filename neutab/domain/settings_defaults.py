"""Canonical user-facing settings and their defaults.

Every key listed here is carried by cloud sync. Layout numbers are pixels.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any

DEFAULT_SETTINGS: MappingProxyType[str, Any] = MappingProxyType(
    {
        "showClock": True,
        "showSeconds": False,
        "showSearchBar": True,
        "contentMaxWidth": 1600,
        "contentPaddingX": 20,
        "contentPaddingTop": 0,
        "contentPaddingBottom": 20,
        "siteTitle": "NeuTab",
        "siteFavicon": "",
        "showTopSites": False,
        "showRecentHistory": False,
        "language": "zh",
        "themeMode": "auto",
        "visualTheme": "neumorphic",
        "iconBorderRadius": 20,
        "cardSize": 110,
    }
)

# Storage keys shared with the storage layer
ICON_KEY_PREFIX = "icon_"
GROUPS_KEY = "quickLaunchGroups"
GROUPS_TIMESTAMP_KEY = "quickLaunchGroups_timestamp"
LEGACY_APPS_KEY = "quickLaunchApps"
CHUNK_MARKER = "_chunk_"
