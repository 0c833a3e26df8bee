import logging
import sys
from typing import Optional, Protocol

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn

logger = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    def listing_page(self, page_no: int) -> None: ...

    def listing_finished(self, count: int) -> None: ...

    def repository_done(self, name: str, fraction: float) -> None: ...

    def cycle_finished(self, total: int) -> None: ...


class LoggingProgressReporter:
    """Reports progress through the standard logger, for non-interactive runs."""

    def listing_page(self, page_no: int) -> None:
        logger.debug(f"Retrieving repository list, page {page_no}.")

    def listing_finished(self, count: int) -> None:
        logger.info(f"Repository listing finished with {count} repositories.")

    def repository_done(self, name: str, fraction: float) -> None:
        logger.debug(f"Aggregated {name} ({fraction:.0%}).")

    def cycle_finished(self, total: int) -> None:
        logger.info(f"Aggregation cycle finished for {total} repositories.")


class RichProgressReporter:
    """
    Console progress bar.

    A spinner pulses while pages of the repository list come in, then a bar
    tracks completed repositories. The bar is hidden once the cycle finishes.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def _show(self, description: str, total: Optional[float]) -> None:
        if self._progress is None:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                console=self.console,
                transient=True,
            )
            self._progress.start()
            self._task = self._progress.add_task(description, total=total)
        else:
            self._progress.update(self._task, description=description, total=total)

    def _hide(self) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None

    def listing_page(self, page_no: int) -> None:
        self._show(f"Retrieving list of all repositories: page {page_no}", total=None)

    def listing_finished(self, count: int) -> None:
        self._hide()

    def repository_done(self, name: str, fraction: float) -> None:
        self._show(name, total=1.0)
        self._progress.update(self._task, completed=fraction)

    def cycle_finished(self, total: int) -> None:
        self._hide()


def create_progress_reporter(enabled: bool = True) -> ProgressReporter:
    if enabled and sys.stderr.isatty():
        return RichProgressReporter()
    return LoggingProgressReporter()
