from typing import Awaitable, Callable, Optional
import asyncio
import structlog
from datetime import datetime

logger = structlog.get_logger(__name__)


class Clock:
    """Wall clock and sleep used by every timer-driven component"""

    def now(self) -> datetime:
        return datetime.now()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class PeriodicJob:
    """Runs a coroutine on a fixed cadence until stopped.

    Stopping cancels the wait between runs. A run already in flight is
    shielded and finishes on its own; callers discard its results if they
    were deactivated meanwhile.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], Awaitable[None]],
        clock: Optional[Clock] = None
    ):
        self.name = name
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.clock = clock or Clock()
        self.runs = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop; no-op if already running"""

        if self.is_running:
            return

        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.info("Periodic job started", job=self.name, interval_seconds=self.interval_seconds)

    def stop(self) -> None:
        """Safe to call at any time, including when never started"""

        if self._task is None:
            return

        if not self._task.done():
            self._task.cancel()
        self._task = None
        logger.info("Periodic job stopped", job=self.name, runs=self.runs)

    async def run_once(self) -> None:
        """Execute one tick under its own tick_id, logging instead of raising"""

        self.runs += 1
        with structlog.contextvars.bound_contextvars(tick_id=f"{self.name}-{self.runs}"):
            try:
                await self.callback()
            except Exception as e:
                logger.error("Periodic job failed", job=self.name, error=str(e))

    async def _run(self):
        while True:
            await self.clock.sleep(self.interval_seconds)
            await asyncio.shield(self.run_once())
