"""Per-key deduplication of concurrent loads.

All callers asking for the same key while a load is in flight share a single
asyncio task and therefore a single loader invocation.  The task is shielded
from caller cancellation: once started it always settles, and its success
hook (the cache write) still runs even if every caller has gone away.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, TypeVar, Union


V = TypeVar("V")

Loader = Callable[[], Union[Awaitable[V], V]]


async def call_loader(loader: Loader[V]) -> V:
    result = loader()
    if inspect.isawaitable(result):
        return await result
    return result


class SingleFlight(Generic[V]):
    def __init__(self) -> None:
        self._inflight: Dict[Hashable, asyncio.Task[V]] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    def pending(self, key: Hashable) -> bool:
        return key in self._inflight

    async def run(
        self,
        key: Hashable,
        loader: Loader[V],
        *,
        on_success: Callable[[V], Any],
        on_error: Callable[[Exception], V],
    ) -> V:
        """Join the in-flight load for ``key`` or start a new one.

        ``on_success`` runs before the in-flight marker is dropped.
        ``on_error`` runs after it is dropped and either returns a fallback
        value for every waiter or raises.
        """

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(
                self._execute(key, loader, on_success, on_error)
            )
            self._inflight[key] = task
        return await asyncio.shield(task)

    def clear(self) -> None:
        self._inflight.clear()

    async def _execute(
        self,
        key: Hashable,
        loader: Loader[V],
        on_success: Callable[[V], Any],
        on_error: Callable[[Exception], V],
    ) -> V:
        try:
            value = await call_loader(loader)
        except Exception as exc:
            self._forget(key)
            return on_error(exc)
        try:
            on_success(value)
        finally:
            self._forget(key)
        return value

    def _forget(self, key: Hashable) -> None:
        if self._inflight.get(key) is asyncio.current_task():
            del self._inflight[key]


__all__ = ["SingleFlight", "Loader", "call_loader"]
