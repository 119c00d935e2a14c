from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List


logger = logging.getLogger("nanocache.events")

EXPIRE = "expire"
EVICT = "evict"
EVENT_KINDS = (EXPIRE, EVICT)


@dataclass(frozen=True)
class CacheEvent:
    key: Hashable
    value: Any
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "value": self.value, "reason": self.reason}


Observer = Callable[[CacheEvent], Any]


class EventNotifier:
    """Fan out cache lifecycle events to registered observers.

    Each observer is invoked in isolation: an exception raised by one observer
    is logged and dropped, and the remaining observers still run.  Store
    mutations that trigger a notification are already complete by then.
    """

    def __init__(self) -> None:
        self._observers: Dict[str, List[Observer]] = {kind: [] for kind in EVENT_KINDS}

    def subscribe(self, kind: str, observer: Observer) -> None:
        self._bucket(kind).append(observer)

    def unsubscribe(self, kind: str, observer: Observer) -> None:
        bucket = self._bucket(kind)
        for index, candidate in enumerate(bucket):
            if candidate is observer:
                del bucket[index]
                return

    def emit(self, kind: str, key: Hashable, value: Any, reason: str) -> None:
        observers = self._observers.get(kind)
        if not observers:
            return
        event = CacheEvent(key=key, value=value, reason=reason)
        for observer in list(observers):
            try:
                observer(event)
            except Exception:
                logger.warning(
                    "Cache %s observer failed for key %r", kind, key, exc_info=True
                )

    def clear(self) -> None:
        for bucket in self._observers.values():
            bucket.clear()

    def count(self, kind: str) -> int:
        return len(self._bucket(kind))

    def _bucket(self, kind: str) -> List[Observer]:
        try:
            return self._observers[kind]
        except KeyError:
            raise ValueError(
                f"Unknown cache event {kind!r}; expected one of {', '.join(EVENT_KINDS)}"
            ) from None


__all__ = ["CacheEvent", "EventNotifier", "Observer", "EVENT_KINDS", "EXPIRE", "EVICT"]
