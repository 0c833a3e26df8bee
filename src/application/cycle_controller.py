import asyncio
import itertools
import logging
from typing import List, Optional

from src.application.aggregator import RepositoryAggregator
from src.application.cycle_context import CycleContext
from src.application.repository_lister import RepositoryLister, sort_names
from src.domain.models import RepositoryRecord, Snapshot
from src.infrastructure.progress import LoggingProgressReporter, ProgressReporter

logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    Holds the snapshot served to readers.

    Cycles write into their own buffers. A finished buffer is merged over the
    previously published snapshot and the result replaces it in a single
    assignment, so readers never see a half-updated record set. Until the first
    cycle publishes, readers get the buffer of the oldest cycle still running.
    Repositories missing from a later listing keep their last published record.
    """

    def __init__(self):
        self._published: Optional[Snapshot] = None
        self._running: List[CycleContext] = []

    def begin(self, context: CycleContext) -> None:
        self._running.append(context)

    def publish(self, context: CycleContext) -> None:
        self.discard(context)
        previous = self._published or {}
        self._published = {**previous, **context.snapshot}
        logger.info(f"Cycle {context.cycle} published {len(context.snapshot)} repositories.")

    def discard(self, context: CycleContext) -> None:
        if context in self._running:
            self._running.remove(context)

    def published(self, name: str) -> Optional[RepositoryRecord]:
        if self._published is None:
            return None
        return self._published.get(name)

    @property
    def has_published(self) -> bool:
        return self._published is not None

    def current(self) -> Snapshot:
        if self._published is not None:
            return self._published
        if self._running:
            return self._running[0].snapshot
        return {}


class AggregationCycleController:
    """
    Runs full aggregation passes: list the organization's repositories, then
    aggregate every one of them concurrently.
    """

    def __init__(
            self,
            lister: RepositoryLister,
            aggregator: RepositoryAggregator,
            organization: str,
            store: Optional[SnapshotStore] = None,
            progress: Optional[ProgressReporter] = None,
    ):
        self.lister = lister
        self.aggregator = aggregator
        self.organization = organization
        self.store = store or SnapshotStore()
        self.progress = progress or LoggingProgressReporter()
        self._cycle_numbers = itertools.count(1)

    async def run_cycle(self) -> Optional[CycleContext]:
        """
        Performs one cycle and returns its context, or None when the listing was empty.

        Aggregation of every repository is launched at once in sorted order; the
        aggregator's semaphore bounds how many requests are actually in flight.
        """
        cycle_no = next(self._cycle_numbers)
        logger.info(f"Cycle {cycle_no}: listing repositories of {self.organization}.")

        names = await self.lister.list_names(self.organization)
        if not names:
            logger.warning(f"Cycle {cycle_no}: no repositories found for {self.organization}.")
            self.progress.cycle_finished(0)
            return None

        unique = list(dict.fromkeys(names))
        if len(unique) != len(names):
            logger.warning(f"Cycle {cycle_no}: listing returned {len(names) - len(unique)} duplicate names.")
        names = sort_names(unique)
        logger.info(f"{self.organization}'s {len(names)} repositories: {', '.join(names)}")

        context = CycleContext(cycle_no, names, progress=self.progress, on_finished=self.store.publish)
        for name in names:
            self.aggregator.seed(context, name, self.store.published(name))
        self.store.begin(context)

        try:
            await asyncio.gather(*(self.aggregator.aggregate(context, name) for name in names))
        except asyncio.CancelledError:
            self.store.discard(context)
            raise

        return context
