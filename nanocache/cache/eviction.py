from __future__ import annotations

from typing import Any, Hashable, Iterable, Optional, Tuple

from .entry import CacheEntry


# Recency dominates; access counts only separate entries touched in the same tick.
RECENCY_WEIGHT = 1_000_000


def lru_score(entry: CacheEntry[Any]) -> float:
    return entry.touched_at * RECENCY_WEIGHT - entry.access_count


def select_victim(
    entries: Iterable[Tuple[Hashable, CacheEntry[Any]]],
) -> Optional[Hashable]:
    """Return the key of the least recently used entry, or ``None`` if empty.

    On equal scores the first entry in iteration (insertion) order wins.
    """

    victim: Optional[Hashable] = None
    lowest = float("inf")
    for key, entry in entries:
        score = lru_score(entry)
        if victim is None or score < lowest:
            lowest = score
            victim = key
    return victim


__all__ = ["RECENCY_WEIGHT", "lru_score", "select_victim"]
