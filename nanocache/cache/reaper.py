from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger("nanocache.reaper")


class Reaper:
    """Periodically sweeps expired entries on the running event loop.

    The task is owned by the cache that created it.  When a sweep removes
    nothing and the store is empty the task ends on its own; the cache calls
    :meth:`ensure_started` again on the next write.
    """

    def __init__(
        self,
        sweep: Callable[[], int],
        *,
        interval_seconds: float,
        is_idle: Callable[[], bool],
    ) -> None:
        self._sweep = sweep
        self._is_idle = is_idle
        self._interval = max(0.0, float(interval_seconds))
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def enabled(self) -> bool:
        return self._interval > 0 and not self._closed

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def ensure_started(self) -> bool:
        if not self.enabled:
            return False
        if self.running:
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the next write inside a loop starts the task.
            return False
        self._task = loop.create_task(self._runner(), name="nanocache-reaper")
        logger.debug("Cache reaper started (interval=%.3fs)", self._interval)
        return True

    def stop(self) -> Optional[asyncio.Task[None]]:
        """Cancel the sweep task and refuse further restarts."""

        self._closed = True
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
        return task

    async def aclose(self) -> None:
        task = self.stop()
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:  # pragma: no cover - expected cancellation
            pass

    async def _runner(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                removed = self._sweep()
                if removed == 0 and self._is_idle():
                    logger.debug("Cache reaper idle; suspending until next write")
                    return
        except asyncio.CancelledError:
            raise
        except Exception:  # pragma: no cover - safety loop
            logger.exception("Cache reaper loop failed")
        finally:
            if self._task is asyncio.current_task():
                self._task = None


__all__ = ["Reaper"]
