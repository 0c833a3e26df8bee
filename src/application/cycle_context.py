import asyncio
import logging
from typing import Callable, Iterable, Optional, Set

from src.domain.models import CycleProgress, RepositoryRecord, Snapshot
from src.infrastructure.progress import LoggingProgressReporter, ProgressReporter

logger = logging.getLogger(__name__)


class CycleContext:
    """
    State owned by one aggregation cycle: its private snapshot buffer and its completion counter.

    Every aggregation task of the cycle receives the same context, so no counter is
    shared between cycles. ``on_finished`` fires once, when the last repository of the
    cycle reports completion.
    """

    def __init__(
            self,
            cycle: int,
            names: Iterable[str],
            progress: Optional[ProgressReporter] = None,
            on_finished: Optional[Callable[["CycleContext"], None]] = None,
    ):
        self.names = list(dict.fromkeys(names))
        self.state = CycleProgress(cycle=cycle, total=len(self.names))
        self.snapshot: Snapshot = {}
        self.progress = progress or LoggingProgressReporter()
        self.finished = asyncio.Event()
        self._on_finished = on_finished
        self._done: Set[str] = set()

    @property
    def cycle(self) -> int:
        return self.state.cycle

    def seed(self, name: str, record: RepositoryRecord) -> RepositoryRecord:
        return self.snapshot.setdefault(name, record)

    def apply(self, name: str, fields: dict) -> RepositoryRecord:
        record = self.snapshot[name].merged(fields)
        self.snapshot[name] = record
        return record

    def mark_done(self, name: str) -> None:
        """Counts one repository as fully aggregated; repeated calls for a name are ignored."""
        if name in self._done:
            logger.warning(f"Cycle {self.cycle}: {name} reported completion twice.")
            return
        self._done.add(name)
        self.state.completed += 1

        if self.state.finished:
            self.progress.cycle_finished(self.state.total)
            self.finished.set()
            if self._on_finished is not None:
                self._on_finished(self)
        else:
            self.progress.repository_done(name, self.state.fraction)
