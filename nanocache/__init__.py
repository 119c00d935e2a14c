"""In-process key-value cache with TTL, stale windows, LRU eviction and single-flight loads."""

from .cache import (
    NEVER,
    CacheEvent,
    CacheStats,
    DisposeReason,
    TTLCache,
)
from .config import CacheSettings

__version__ = "0.1.0"

__all__ = [
    "TTLCache",
    "CacheSettings",
    "CacheStats",
    "CacheEvent",
    "DisposeReason",
    "NEVER",
    "__version__",
]
