import aiohttp
import asyncio
import logging
from typing import Any, Dict, List, Optional

from src.domain.exceptions import RateLimitExceededException, UpstreamError
from src.domain.settings import DEFAULT_API_URL

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=60, connect=10)
# Limit concurrent connections; the aggregator applies its own cap on top
CONNECTOR_LIMIT = 50

class GitHubRestClient:
    """
    Client for the GitHub REST API.
    Owns an aiohttp session for its lifetime and turns every failure into an UpstreamError.
    """

    def __init__(
            self,
            token: str,
            api_url: str = DEFAULT_API_URL,
            session: Optional[aiohttp.ClientSession] = None,
            connector_limit: int = CONNECTOR_LIMIT,
    ):
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "github-org-aggregator",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self.api_url = api_url.rstrip("/")
        self.connector_limit = connector_limit
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "GitHubRestClient":
        if self.session is None:
            self.session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=self.connector_limit),
                headers=self.headers,
                timeout=REQUEST_TIMEOUT,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.close()
        return False

    async def close(self) -> None:
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return self.api_url + path

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Fetches one resource and returns its decoded JSON body.

        Args:
            path (str): Resource path relative to the API root, query string allowed.
            params (Dict[str, Any], optional): Extra query parameters.

        Raises:
            RateLimitExceededException: when GitHub reports an exhausted rate limit.
            UpstreamError: on any other HTTP error status or transport failure.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized. Use the client as an async context manager.")

        try:
            async with self.session.get(self._url(path), params=params, headers=self.headers) as response:
                if response.status in {403, 429} and response.headers.get("X-RateLimit-Remaining") == "0":
                    raise RateLimitExceededException(
                        path, response.status, reset_at=response.headers.get("X-RateLimit-Reset")
                    )

                if response.status >= 400:
                    raise UpstreamError(path, response.status)

                if response.status == 204:
                    return None
                return await response.json(content_type=None)

        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.debug(f"Transport failure on {path}: {e!r}")
            raise UpstreamError(path, message=f"GitHub API request failed: {e!r}.") from e

    async def list_org_repos(self, organization: str, page: int, per_page: int) -> List[Dict[str, Any]]:
        """Fetches one page of an organization's repositories."""
        body = await self.get(f"/orgs/{organization}/repos", params={"page": page, "per_page": per_page})
        if not isinstance(body, list):
            raise UpstreamError(f"/orgs/{organization}/repos", message="Unexpected repository listing payload.")
        return body
