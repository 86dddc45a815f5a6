from __future__ import annotations

from .reachability import ReachabilityConfig
from .runtime import RuntimeConfig
from .settings import AppConfig, Settings, load_config
from .sync import CloudSyncConfig

__all__ = [
    "AppConfig",
    "CloudSyncConfig",
    "ReachabilityConfig",
    "RuntimeConfig",
    "Settings",
    "load_config",
]
