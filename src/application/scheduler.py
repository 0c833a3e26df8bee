import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Triggers an aggregation cycle at start-up and then at a fixed interval.

    Each cycle runs in its own task, so a slow cycle never delays the next
    trigger and cycles may overlap.
    """

    def __init__(self, run_cycle: Callable[[], Awaitable[object]], period_seconds: float):
        if period_seconds <= 0:
            raise ValueError("period_seconds must be positive.")
        self.run_cycle = run_cycle
        self.period_seconds = period_seconds
        self.triggered = 0
        self._cycles: Set[asyncio.Task] = set()
        self._loop_task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> int:
        return len(self._cycles)

    def trigger(self) -> asyncio.Task:
        self.triggered += 1
        task = asyncio.create_task(self.run_cycle(), name=f"aggregation-cycle-{self.triggered}")
        self._cycles.add(task)
        task.add_done_callback(self._on_cycle_done)
        return task

    def _on_cycle_done(self, task: asyncio.Task) -> None:
        self._cycles.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Aggregation cycle {task.get_name()} failed: {error!r}", exc_info=error)

    async def run(self) -> None:
        """Runs forever: one trigger now, then one per period."""
        logger.info(f"Refreshing every {self.period_seconds:.0f}s.")
        while True:
            self.trigger()
            await asyncio.sleep(self.period_seconds)

    def start(self) -> asyncio.Task:
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self.run(), name="refresh-scheduler")
        return self._loop_task

    async def stop(self) -> None:
        tasks = list(self._cycles)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
