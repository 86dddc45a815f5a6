"""Pydantic models for the cloud sync HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

PUSH_PAYLOAD_VERSION = 3


class BackupPayload(BaseModel):
    """Local snapshot produced by a ``SyncPayloadSource``."""

    model_config = ConfigDict(populate_by_name=True)

    exported_at: str = Field(alias="exportedAt")
    settings: dict[str, Any] = Field(default_factory=dict)
    custom_icons: dict[str, str] = Field(default_factory=dict, alias="customIcons")


class PushData(BaseModel):
    settings: dict[str, Any] = Field(default_factory=dict)


class PushRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: int = PUSH_PAYLOAD_VERSION
    exported_at: str = Field(serialization_alias="exportedAt")
    data: PushData


class IconUploadRequest(BaseModel):
    id: str
    data: str
