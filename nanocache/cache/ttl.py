from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
)

from nanocache.config import CacheSettings, get_cache_settings

from .entry import CacheEntry, DisposeReason, expiry_from
from .eviction import select_victim
from .events import EVICT, EXPIRE, EventNotifier, Observer
from .expiration import Freshness, classify, is_expired
from .reaper import Reaper
from .singleflight import Loader, SingleFlight
from .sizing import Cloner, Sizer, estimate_size, resolve_cloner


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DisposeCallback = Callable[[Any, Any, DisposeReason], Any]

logger = logging.getLogger("nanocache.cache")

_MISSING: Any = object()


@dataclass(frozen=True)
class CacheStats:
    size: int
    expired: int
    estimated_bytes: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "size": self.size,
            "expired": self.expired,
            "estimated_bytes": self.estimated_bytes,
        }


class TTLCache(Generic[K, V]):
    """In-memory cache with TTL, stale windows, LRU eviction and single-flight loads.

    The cache is meant to be driven from a single asyncio event loop.  Every
    mutation runs to completion without awaiting; the only suspension points
    are loader calls inside :meth:`get_or_set` and the reaper's sleep.

    Options not given through ``settings`` may be passed as keyword
    arguments, e.g. ``TTLCache(max_entries=3, default_ttl_seconds=60)``.
    """

    def __init__(
        self,
        settings: Optional[CacheSettings] = None,
        *,
        on_dispose: Optional[DisposeCallback] = None,
        clone: Optional[Cloner[Any]] = None,
        sizer: Optional[Sizer] = None,
        clock: Optional[Callable[[], float]] = None,
        **options: Any,
    ) -> None:
        if settings is None:
            settings = CacheSettings(**options)
        elif options:
            settings = CacheSettings.model_validate({**settings.model_dump(), **options})
        self._settings = settings
        self._store: Dict[K, CacheEntry[V]] = {}
        self._clock = clock or time.time
        self._on_dispose = on_dispose
        self._clone = resolve_cloner(settings.clone_on_access, clone)
        self._sizer = sizer or estimate_size
        self._events = EventNotifier()
        self._flights: SingleFlight[V] = SingleFlight()
        self._disposed = False
        self._reaper = Reaper(
            self._sweep,
            interval_seconds=settings.reap_interval_seconds,
            is_idle=lambda: not self._store,
        )
        self._reaper.ensure_started()

    @classmethod
    def from_env(cls, **collaborators: Any) -> "TTLCache[Any, Any]":
        """Build a cache from ``NANOCACHE_*`` environment and config file."""

        return cls(get_cache_settings(), **collaborators)

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    @property
    def size(self) -> int:
        return len(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return self.has(key)  # type: ignore[arg-type]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(size={len(self._store)}, "
            f"max_entries={self._settings.max_entries})"
        )

    # Core API -----------------------------------------------------------

    def put(self, key: K, value: V, ttl: Optional[float] = None) -> "TTLCache[K, V]":
        now = self._clock()
        ttl_seconds = self._settings.default_ttl_seconds if ttl is None else ttl
        stored = self._copy(value)
        entry = self._store.get(key)
        if entry is not None:
            # Value update: recency moves, access history is kept.
            entry.value = stored
            entry.expires_at = expiry_from(now, ttl_seconds)
            entry.touched_at = now
        else:
            self._store[key] = CacheEntry.create(stored, now=now, ttl_seconds=ttl_seconds)
            if self._settings.bounded and len(self._store) > self._settings.max_entries:
                self._evict_lru()
        self._reaper.ensure_started()
        return self

    def get(self, key: K, default: Any = None, *, touch: bool = True) -> Any:
        entry = self._store.get(key)
        if entry is None:
            return default
        now = self._clock()
        if not self._freshness(entry, now).servable:
            return default
        if touch:
            entry.touch(now)
        return self._copy(entry.value)

    def peek(self, key: K, default: Any = None) -> Any:
        return self.get(key, default, touch=False)

    def has(self, key: K) -> bool:
        entry = self._store.get(key)
        if entry is None:
            return False
        return self._freshness(entry, self._clock()).servable

    def delete(self, key: K) -> "TTLCache[K, V]":
        entry = self._store.pop(key, None)
        if entry is not None:
            self._dispose(key, entry, DisposeReason.DELETE)
        return self

    def clear(self) -> "TTLCache[K, V]":
        removed = list(self._store.items())
        self._store.clear()
        for key, entry in removed:
            self._dispose(key, entry, DisposeReason.CLEAR)
        return self

    def ttl(self, key: K, new_ttl: Optional[float] = None) -> Any:
        """Remaining lifetime of ``key`` in seconds, or reset it.

        Without ``new_ttl`` returns the remaining seconds, ``math.inf`` for
        entries that never expire, or ``None`` when the key is absent.  With
        ``new_ttl`` the expiry is recomputed from now (``0`` means never) and
        the cache is returned.
        """

        entry = self._store.get(key)
        if new_ttl is not None:
            if entry is not None:
                entry.expires_at = expiry_from(self._clock(), new_ttl)
            return self
        if entry is None:
            return None
        return entry.remaining(self._clock())

    # Batch helpers ------------------------------------------------------

    def get_many(self, keys: Iterable[K], default: Any = None) -> List[Any]:
        return [self.get(key, default) for key in keys]

    def put_many(self, items: Mapping[K, V], ttl: Optional[float] = None) -> "TTLCache[K, V]":
        for key, value in items.items():
            self.put(key, value, ttl)
        return self

    def delete_many(self, keys: Iterable[K]) -> "TTLCache[K, V]":
        for key in keys:
            self.delete(key)
        return self

    # Snapshots ----------------------------------------------------------

    def keys(self) -> List[K]:
        return list(self._store.keys())

    def values(self) -> List[V]:
        return [entry.value for entry in self._store.values()]

    def items(self) -> List[Tuple[K, V]]:
        return [(key, entry.value) for key, entry in self._store.items()]

    def stats(self) -> CacheStats:
        now = self._clock()
        expired = 0
        total = 0
        for entry in self._store.values():
            if is_expired(entry, now):
                expired += 1
            total += self._sizer(entry.value)
        return CacheStats(size=len(self._store), expired=expired, estimated_bytes=total)

    # Async helpers ------------------------------------------------------

    async def get_or_set(self, key: K, loader: Loader[V], ttl: Optional[float] = None) -> V:
        """Return the cached value or load it once for all concurrent callers."""

        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached
        return await self._flights.run(
            key,
            loader,
            on_success=lambda value: self._store_loaded(key, value, ttl),
            on_error=lambda exc: self._stale_if_error(key, exc),
        )

    def wrap(
        self, key: K, loader: Loader[V], ttl: Optional[float] = None
    ) -> Callable[[], Awaitable[V]]:
        async def cached_loader() -> V:
            return await self.get_or_set(key, loader, ttl)

        return cached_loader

    # Events -------------------------------------------------------------

    def on(self, kind: str, observer: Observer) -> "TTLCache[K, V]":
        self._events.subscribe(kind, observer)
        return self

    def off(self, kind: str, observer: Observer) -> "TTLCache[K, V]":
        self._events.unsubscribe(kind, observer)
        return self

    # Cleanup & disposal -------------------------------------------------

    def prune(self) -> int:
        """Run one reaper sweep immediately; returns the number of entries removed."""

        return self._sweep()

    def dispose(self) -> None:
        self._disposed = True
        self._reaper.stop()
        self.clear()
        self._events.clear()
        self._flights.clear()

    async def aclose(self) -> None:
        await self._reaper.aclose()
        self.dispose()

    # Internals ----------------------------------------------------------

    def _freshness(self, entry: CacheEntry[V], now: float) -> Freshness:
        return classify(
            entry,
            now,
            allow_stale=self._settings.allow_stale,
            stale_while_revalidate=self._settings.stale_while_revalidate_seconds,
        )

    def _copy(self, value: Any) -> Any:
        if self._clone is None:
            return value
        return self._clone(value)

    def _store_loaded(self, key: K, value: V, ttl: Optional[float]) -> None:
        if self._disposed:
            # Waiters still get the value; the torn-down store stays empty.
            logger.debug("Dropping load result for %r after dispose", key)
            return
        self.put(key, value, ttl)

    def _stale_if_error(self, key: K, exc: Exception) -> V:
        window = self._settings.stale_if_error_seconds
        entry = self._store.get(key)
        if window > 0 and entry is not None and self._clock() - entry.expires_at < window:
            logger.warning(
                "Loader for %r failed (%s); serving stale value", key, exc
            )
            return self._copy(entry.value)
        raise exc

    def _sweep(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._store.items() if is_expired(entry, now)]
        removed = 0
        for key in expired:
            # Observers may already have deleted later keys.
            entry = self._store.pop(key, None)
            if entry is None:
                continue
            removed += 1
            self._dispose(key, entry, DisposeReason.EXPIRE)
            self._events.emit(EXPIRE, key, entry.value, "ttl")
        if removed:
            logger.debug("Reaped %d expired cache entries", removed)
        return removed

    def _evict_lru(self) -> None:
        victim = select_victim(self._store.items())
        if victim is None:
            return
        entry = self._store.pop(victim)
        logger.debug("Evicting %r to stay within %d entries", victim, self._settings.max_entries)
        self._dispose(victim, entry, DisposeReason.LRU)
        self._events.emit(EVICT, victim, entry.value, DisposeReason.LRU.value)

    def _dispose(self, key: K, entry: CacheEntry[V], reason: DisposeReason) -> None:
        if self._on_dispose is None:
            return
        try:
            self._on_dispose(entry.value, key, reason)
        except Exception:
            logger.warning("Dispose hook failed for %r (%s)", key, reason.value, exc_info=True)


__all__ = ["TTLCache", "CacheStats", "DisposeCallback"]
