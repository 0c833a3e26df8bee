import logging
from typing import AsyncIterator, Iterable, List, Optional

from src.domain.exceptions import UpstreamError
from src.domain.settings import DEFAULT_PAGE_SIZE
from src.infrastructure.github_client import GitHubRestClient
from src.infrastructure.progress import LoggingProgressReporter, ProgressReporter

logger = logging.getLogger(__name__)


def sort_names(names: Iterable[str]) -> List[str]:
    """Case-insensitive, stable ordering of repository names."""
    return sorted(names, key=str.lower)


class RepositoryLister:
    """
    Walks the paginated repository listing of an organization.

    A failed page ends the listing: the names gathered so far are treated as the
    complete list and the error is only logged.
    """

    def __init__(
            self,
            github_client: GitHubRestClient,
            page_size: int = DEFAULT_PAGE_SIZE,
            progress: Optional[ProgressReporter] = None,
    ):
        self.github_client = github_client
        self.page_size = page_size
        self.progress = progress or LoggingProgressReporter()

    async def iter_names(self, organization: str) -> AsyncIterator[str]:
        """Yields repository names page by page, starting again from page 1 on every call."""
        page_no = 1
        while True:
            self.progress.listing_page(page_no)
            try:
                repos = await self.github_client.list_org_repos(organization, page_no, self.page_size)
            except UpstreamError as e:
                logger.error(f"Listing of {organization} stopped at page {page_no}: {e}")
                return

            if not repos:
                return

            for repo in repos:
                name = repo.get("name") if isinstance(repo, dict) else None
                if name:
                    yield name
            page_no += 1

    async def list_names(self, organization: str) -> List[str]:
        names = [name async for name in self.iter_names(organization)]
        self.progress.listing_finished(len(names))
        return names
