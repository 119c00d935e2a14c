"""Freshness classification shared by reads, membership checks and the reaper.

Every code path that needs to know whether an entry may still be served goes
through :func:`classify`.  Reads pass the configured grace windows; the reaper
passes none, so it only reclaims entries whose expiry time has passed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from .entry import CacheEntry


class Freshness(Enum):
    ALIVE = "alive"
    STALE = "stale"
    DEAD = "dead"

    @property
    def servable(self) -> bool:
        return self is not Freshness.DEAD


def classify(
    entry: CacheEntry[Any],
    now: float,
    *,
    allow_stale: bool = False,
    stale_while_revalidate: float = 0.0,
) -> Freshness:
    """Classify ``entry`` at time ``now``.

    An entry is alive until ``expires_at`` is strictly in the past.  Once
    expired it stays servable when ``allow_stale`` is set, or while the time
    elapsed since expiry is below the stale-while-revalidate window.
    """

    if entry.expires_at >= now:
        return Freshness.ALIVE
    if allow_stale:
        return Freshness.STALE
    if stale_while_revalidate > 0 and now - entry.expires_at < stale_while_revalidate:
        return Freshness.STALE
    return Freshness.DEAD


def is_expired(entry: CacheEntry[Any], now: float) -> bool:
    """Strict expiry check with no grace windows applied."""

    return classify(entry, now) is Freshness.DEAD


__all__ = ["Freshness", "classify", "is_expired"]
