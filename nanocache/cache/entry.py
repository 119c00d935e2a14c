from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar


V = TypeVar("V")

NEVER = math.inf


class DisposeReason(str, Enum):
    """Why an entry left the store."""

    EXPIRE = "expire"
    LRU = "lru"
    DELETE = "delete"
    CLEAR = "clear"


@dataclass
class CacheEntry(Generic[V]):
    value: V
    expires_at: float
    touched_at: float
    access_count: int = 0

    @classmethod
    def create(cls, value: V, *, now: float, ttl_seconds: float) -> "CacheEntry[V]":
        return cls(
            value=value,
            expires_at=expiry_from(now, ttl_seconds),
            touched_at=now,
        )

    @property
    def never_expires(self) -> bool:
        return self.expires_at == NEVER

    def touch(self, now: float) -> None:
        self.touched_at = now
        self.access_count += 1

    def remaining(self, now: float) -> float:
        if self.never_expires:
            return NEVER
        return max(0.0, self.expires_at - now)


def expiry_from(now: float, ttl_seconds: float) -> float:
    """Absolute expiry for a TTL relative to ``now``; non-positive means never."""

    if ttl_seconds <= 0:
        return NEVER
    return now + float(ttl_seconds)


__all__ = ["CacheEntry", "DisposeReason", "NEVER", "expiry_from"]
