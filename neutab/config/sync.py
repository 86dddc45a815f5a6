from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ._validators import _parse_bounded_float, _parse_bounded_int


class CloudSyncConfig(BaseModel):
    """Timing knobs for automatic cloud push/pull."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    push_debounce_ms: int = Field(
        default=2500,
        validation_alias="CLOUD_SYNC_PUSH_DEBOUNCE_MS",
        description="Quiet period after the last local change before pushing",
    )
    suppress_push_after_pull_ms: int = Field(
        default=5000,
        validation_alias="CLOUD_SYNC_SUPPRESS_AFTER_PULL_MS",
        description="Window after a successful pull during which pushes are dropped",
    )
    pull_cooldown_ms: int = Field(
        default=60_000,
        validation_alias="CLOUD_SYNC_PULL_COOLDOWN_MS",
        description="Minimum interval between automatic pulls across all instances",
    )
    prefs_poll_interval_sec: float = Field(
        default=2.0,
        validation_alias="SYNC_PREFS_POLL_INTERVAL_SEC",
        description="Fallback polling interval for preference-change detection",
    )
    request_timeout_sec: float = Field(
        default=30.0,
        validation_alias="CLOUD_SYNC_REQUEST_TIMEOUT_SEC",
        description="Transport timeout for push/pull HTTP requests",
    )
    pull_icon_concurrency: int = Field(default=4, validation_alias="CLOUD_SYNC_PULL_ICON_CONCURRENCY")
    push_icon_concurrency: int = Field(default=3, validation_alias="CLOUD_SYNC_PUSH_ICON_CONCURRENCY")

    @field_validator(
        "push_debounce_ms", "suppress_push_after_pull_ms", "pull_cooldown_ms", mode="before"
    )
    @classmethod
    def _validate_window_ms(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        return _parse_bounded_int(
            value,
            default=default,
            name=info.field_name.replace("_", " "),
            low=0,
            high=3_600_000,
        )

    @field_validator("prefs_poll_interval_sec", mode="before")
    @classmethod
    def _validate_poll_interval(cls, value: Any) -> float:
        return _parse_bounded_float(
            value, default=2.0, name="preference poll interval", low=0.1, high=3600.0
        )

    @field_validator("request_timeout_sec", mode="before")
    @classmethod
    def _validate_request_timeout(cls, value: Any) -> float:
        return _parse_bounded_float(
            value, default=30.0, name="cloud sync request timeout", low=1.0, high=600.0
        )

    @field_validator("pull_icon_concurrency", "push_icon_concurrency", mode="before")
    @classmethod
    def _validate_concurrency(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        return _parse_bounded_int(
            value, default=default, name=info.field_name.replace("_", " "), low=1, high=32
        )
