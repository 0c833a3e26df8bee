import asyncio
import logging
from typing import Optional

from src.application.cycle_context import CycleContext
from src.domain.exceptions import ResponseShapeError, UpstreamError
from src.domain.models import ErrorKind, RepositoryRecord, SubFetchKind, SubFetchResult
from src.domain.settings import DEFAULT_MAX_CONCURRENT_REQUESTS, DEFAULT_WEB_URL
from src.infrastructure.acl import FAILURE_FALLBACKS, TRANSLATORS
from src.infrastructure.github_client import GitHubRestClient

logger = logging.getLogger(__name__)

SUB_FETCH_PATHS = {
    SubFetchKind.METADATA: "",
    SubFetchKind.COMMITS: "/commits",
    SubFetchKind.ISSUES: "/issues",
    SubFetchKind.CONTRIBUTORS: "/contributors",
    SubFetchKind.PULL_REQUESTS: "/pulls",
    SubFetchKind.RELEASES: "/releases",
}


class RepositoryAggregator:
    """
    Builds the RepositoryRecord of one repository from six independent sub-fetches.

    Sub-fetches are issued concurrently and merged into the cycle's buffer as they
    resolve. A failing sub-fetch only affects the fields it owns.
    """

    def __init__(
            self,
            github_client: GitHubRestClient,
            organization: str,
            web_url: str = DEFAULT_WEB_URL,
            max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS,
            semaphore: Optional[asyncio.Semaphore] = None,
    ):
        self.github_client = github_client
        self.organization = organization
        self.web_url = web_url
        self._semaphore = semaphore or asyncio.Semaphore(max_concurrent_requests)

    def placeholder(self, name: str) -> RepositoryRecord:
        return RepositoryRecord.placeholder(self.web_url, self.organization, name)

    def sub_fetch_path(self, name: str, kind: SubFetchKind) -> str:
        return f"/repos/{self.organization}/{name}{SUB_FETCH_PATHS[kind]}"

    def seed(
            self,
            context: CycleContext,
            name: str,
            previous: Optional[RepositoryRecord] = None,
    ) -> RepositoryRecord:
        """
        Creates the record of ``name`` in ``context`` before any sub-fetch is issued.

        A repository already published starts from its previous record, so a field
        whose sub-fetch fails in this cycle keeps its last known value. ``github_url``
        is always rebuilt from the current organization and web URL.
        """
        placeholder = self.placeholder(name)
        if previous is None:
            return context.seed(name, placeholder)
        return context.seed(name, previous.merged({"github_url": placeholder.github_url}))

    async def aggregate(self, context: CycleContext, name: str) -> RepositoryRecord:
        """
        Aggregates one repository, already seeded with ``seed``, into ``context``.

        Completion is reported to the context once all six sub-fetches have resolved,
        whatever their outcome.
        """
        results = await asyncio.gather(
            *(self._sub_fetch(context, name, kind) for kind in SubFetchKind)
        )

        failed = [result.kind.value for result in results if not result.ok]
        if failed:
            logger.info(f"{name}: {len(failed)} of {len(results)} sub-fetches failed ({', '.join(failed)}).")

        context.mark_done(name)
        return context.snapshot[name]

    async def _sub_fetch(self, context: CycleContext, name: str, kind: SubFetchKind) -> SubFetchResult:
        path = self.sub_fetch_path(name, kind)

        async with self._semaphore:
            try:
                body = await self.github_client.get(path)
                result = SubFetchResult(kind=kind, fields=TRANSLATORS[kind](body))
            except UpstreamError as e:
                logger.warning(f"{name}: {kind.value} sub-fetch failed: {e}")
                result = self._failure(kind, ErrorKind.TRANSPORT)
            except ResponseShapeError as e:
                logger.warning(f"{name}: unexpected {kind.value} payload: {e}")
                result = self._failure(kind, ErrorKind.SHAPE)
            except Exception as e:
                logger.exception(f"{name}: {kind.value} sub-fetch raised unexpectedly: {e}")
                result = self._failure(kind, ErrorKind.TRANSPORT)

        context.apply(name, result.fields)
        return result

    @staticmethod
    def _failure(kind: SubFetchKind, error: ErrorKind) -> SubFetchResult:
        return SubFetchResult(kind=kind, fields=dict(FAILURE_FALLBACKS.get(kind, {})), error=error)
