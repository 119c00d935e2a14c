from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Callable, Optional, TypeVar


T = TypeVar("T")

Cloner = Callable[[T], T]
Sizer = Callable[[Any], int]


def estimate_size(value: Any) -> int:
    """Rough byte estimate used by ``TTLCache.stats``; not an accounting tool."""

    if value is None:
        return 0
    if isinstance(value, str):
        return len(value) * 2
    if isinstance(value, (bytes, bytearray, memoryview)):
        return len(value)
    if isinstance(value, (bool, int, float)):
        return 8
    if isinstance(value, Mapping):
        return len(value) * 64
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) * 32
    return 100


def resolve_cloner(enabled: bool, clone: Optional[Cloner[Any]]) -> Optional[Cloner[Any]]:
    if not enabled:
        return None
    return clone or copy.deepcopy


__all__ = ["Cloner", "Sizer", "estimate_size", "resolve_cloner"]
