"""Pydantic models for config validation.

Opt-in schema validation for ``Config.config_data``.  Call
``Config.validated()`` to obtain a typed, validated ``SparebookConfig``
instance.  Existing dict-based access continues to work unchanged.
"""

from __future__ import annotations

from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoggingConfig(BaseModel):
    """Log sink settings."""

    level: str = "WARNING"
    file: str | None = None

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.upper()
            if v not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
                raise ValueError(f"unknown log level: {v}")
        return v


class EngineConfig(BaseModel):
    """Knobs for the valuation engine callers."""

    history_window_days: int = Field(default=365, ge=0, le=36_600)
    timezone: str | None = None

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, v: str | None) -> str | None:
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"unknown timezone: {v}") from e
        return v or None


class CacheConfig(BaseModel):
    """Request-deduplication cache around the engine."""

    enabled: bool = True
    ttl_seconds: float = Field(default=300, ge=0)


class SparebookConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so callers can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    logging: LoggingConfig = LoggingConfig()
    engine: EngineConfig = EngineConfig()
    cache: CacheConfig = CacheConfig()
