from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from ._validators import _parse_bool, _parse_bounded_int


class ReachabilityConfig(BaseModel):
    """Internal-URL liveness probing configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = Field(default=True, validation_alias="REACHABILITY_ENABLED")
    probe_timeout_ms: int = Field(default=1500, validation_alias="REACHABILITY_PROBE_TIMEOUT_MS")
    cache_ttl_ms: int = Field(default=60_000, validation_alias="REACHABILITY_CACHE_TTL_MS")
    negative_cache_ttl_ms: int = Field(
        default=10_000, validation_alias="REACHABILITY_NEGATIVE_CACHE_TTL_MS"
    )
    optimistic_on_error: bool = Field(
        default=True,
        validation_alias="REACHABILITY_OPTIMISTIC_ON_ERROR",
        description="Treat non-timeout probe failures as reachable",
    )

    @field_validator("enabled", "optimistic_on_error", mode="before")
    @classmethod
    def _validate_flags(cls, value: Any, info: ValidationInfo) -> bool:
        return _parse_bool(value, default=cls.model_fields[info.field_name].default)

    @field_validator("probe_timeout_ms", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> int:
        return _parse_bounded_int(
            value, default=1500, name="reachability probe timeout", low=1, high=60_000
        )

    @field_validator("cache_ttl_ms", "negative_cache_ttl_ms", mode="before")
    @classmethod
    def _validate_ttl(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        return _parse_bounded_int(
            value, default=default, name=info.field_name.replace("_", " "), low=0, high=86_400_000
        )

    @model_validator(mode="after")
    def _validate_ttl_order(self) -> ReachabilityConfig:
        if self.negative_cache_ttl_ms > self.cache_ttl_ms:
            raise ValueError("negative cache TTL cannot exceed the positive cache TTL")
        return self
