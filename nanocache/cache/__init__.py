from .entry import NEVER, CacheEntry, DisposeReason
from .events import CacheEvent, EVICT, EXPIRE
from .expiration import Freshness, classify
from .sizing import estimate_size
from .ttl import CacheStats, TTLCache

__all__ = [
    "TTLCache",
    "CacheStats",
    "CacheEntry",
    "CacheEvent",
    "DisposeReason",
    "Freshness",
    "classify",
    "estimate_size",
    "EVICT",
    "EXPIRE",
    "NEVER",
]
