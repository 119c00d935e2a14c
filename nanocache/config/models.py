from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _to_bool(value: Union[str, bool]) -> bool:
    if isinstance(value, bool):
        return value
    normalized = value.strip().lower()
    return normalized in {"1", "true", "yes", "on", "y"}


class CacheSettings(BaseModel):
    """Immutable tuning knobs for :class:`nanocache.TTLCache`.

    Durations are seconds; ``0`` disables the corresponding feature
    (no default expiry, unbounded size, no reaper, no grace window).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_ttl_seconds: float = Field(0.0, ge=0.0)
    max_entries: int = Field(0, ge=0)
    reap_interval_seconds: float = Field(10.0, ge=0.0)
    allow_stale: bool = False
    stale_while_revalidate_seconds: float = Field(0.0, ge=0.0)
    stale_if_error_seconds: float = Field(0.0, ge=0.0)
    clone_on_access: bool = False

    @field_validator("allow_stale", "clone_on_access", mode="before")
    @classmethod
    def _parse_bool(cls, value: Union[str, bool]) -> bool:
        if isinstance(value, str):
            return _to_bool(value)
        return value

    @property
    def bounded(self) -> bool:
        return self.max_entries > 0


__all__ = ["CacheSettings"]
