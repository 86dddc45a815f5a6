"""Automatic cloud push/pull scheduling."""

from neutab.application.sync.agent import CloudSyncAgent
from neutab.application.sync.guards import InFlightGuard, SuppressionWindow
from neutab.application.sync.pull_scheduler import PullScheduler
from neutab.application.sync.push_scheduler import PushScheduler
from neutab.application.sync.status_recorder import SyncStatusRecorder

__all__ = [
    "CloudSyncAgent",
    "InFlightGuard",
    "PullScheduler",
    "PushScheduler",
    "SuppressionWindow",
    "SyncStatusRecorder",
]
