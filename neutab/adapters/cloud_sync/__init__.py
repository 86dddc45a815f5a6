"""Cloud sync HTTP adapter."""

from neutab.adapters.cloud_sync.client import CloudSyncClient
from neutab.adapters.cloud_sync.models import BackupPayload

__all__ = ["BackupPayload", "CloudSyncClient"]
