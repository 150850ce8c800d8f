"""
Near real-time refresh of order views.

There is no push channel: PollingOrderFeed re-runs a loader every few
seconds and hands the result to a callback. Anything that wants updates
depends on OrderFeed only, so a subscription based feed can replace polling
without touching the order views.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[Any]]
Listener = Callable[[Any], Any]


class OrderFeed:
    async def start(self) -> None:
        raise NotImplementedError

    async def stop(self) -> None:
        raise NotImplementedError

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()


class PollingOrderFeed(OrderFeed):
    def __init__(self, loader: Loader, on_update: Optional[Listener] = None, interval: float = 3.0):
        if interval <= 0:
            raise ValueError("Polling interval must be positive")
        self.loader = loader
        self.on_update = on_update
        self.interval = interval
        self.latest: Any = None
        self.polls = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> Any:
        """Run the loader once and publish the result."""
        result = await self.loader()
        self.latest = result
        self.polls += 1
        if self.on_update is not None:
            outcome = self.on_update(result)
            if asyncio.iscoroutine(outcome):
                await outcome
        return result

    async def _run(self) -> None:
        while True:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception:
                # Keep polling; the next round may succeed
                logger.exception("Order feed refresh failed")
            await asyncio.sleep(self.interval)

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
