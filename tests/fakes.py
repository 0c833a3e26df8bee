import asyncio
from typing import Any, Dict, List, Optional

from src.domain.exceptions import UpstreamError


class FakeGitHubClient:
    """In-memory stand-in for GitHubRestClient.

    ``responses`` maps a path to a body or to an exception instance to raise.
    Unknown paths raise a 404 UpstreamError. When ``gate`` is set, every
    ``get`` waits for it before answering.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Any]] = None,
        pages: Optional[List[Any]] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.responses = responses or {}
        self.pages = pages or []
        self.gate = gate
        self.calls: List[str] = []
        self.page_calls: List[int] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get(self, path: str, params=None) -> Any:
        self.calls.append(path)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            if path not in self.responses:
                raise UpstreamError(path, 404)
            value = self.responses[path]
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            self.in_flight -= 1

    async def list_org_repos(self, organization: str, page: int, per_page: int):
        self.page_calls.append(page)
        await asyncio.sleep(0)
        if page > len(self.pages):
            return []
        value = self.pages[page - 1]
        if isinstance(value, Exception):
            raise value
        return [{"name": name} for name in value]


def repository_responses(org: str, name: str, **overrides: Any) -> Dict[str, Any]:
    """Successful bodies for the six sub-fetches of one repository."""
    base = f"/repos/{org}/{name}"
    responses = {
        base: {
            "name": name,
            "created_at": "2015-03-04T05:06:07Z",
            "description": f"{name} description",
            "homepage": f"https://{name}.example.org",
        },
        base + "/commits": [{"commit": {"author": {"date": "2024-01-02T03:04:05Z"}}}],
        base + "/issues": [{"number": 1}, {"number": 2}, {"number": 3}],
        base + "/contributors": [{"login": "a"}, {"login": "b"}],
        base + "/pulls": [{"number": 7}],
        base + "/releases": [{"tag_name": "v2.0.0"}, {"tag_name": "v1.0.0"}],
    }
    for suffix, value in overrides.items():
        responses[base + ("/" + suffix if suffix != "metadata" else "")] = value
    return responses


async def wait_until(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")
