from aiohttp.test_utils import AioHTTPTestCase

from src.application.cycle_context import CycleContext
from src.application.cycle_controller import SnapshotStore
from src.domain.exceptions import UpstreamError
from src.domain.models import RepositoryRecord
from src.infrastructure.http_api import create_app, upstream_path
from tests.fakes import FakeGitHubClient


class TestHttpApi(AioHTTPTestCase):
    async def get_application(self):
        self.store = SnapshotStore()
        context = CycleContext(1, ["alpha", "Beta"])
        context.seed("alpha", RepositoryRecord(github_url="https://github.com/w3c/alpha").merged({"contributors": 4}))
        context.seed("Beta", RepositoryRecord(github_url="https://github.com/w3c/Beta"))
        self.store.begin(context)

        self.github_client = FakeGitHubClient({
            "/repos/w3c/alpha/issues": [{"number": 1}],
            "/repos/w3c/alpha/pulls?state=closed": [],
            "/boom": UpstreamError("/boom", 500),
        })
        return create_app(self.store, self.github_client)

    async def test_projects_returns_current_snapshot(self) -> None:
        async with self.client.request("GET", "/projects") as resp:
            self.assertEqual(resp.status, 200)
            self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")
            body = await resp.json()

        self.assertEqual(body, {
            "alpha": {"github_url": "https://github.com/w3c/alpha", "contributors": 4},
            "Beta": {"github_url": "https://github.com/w3c/Beta"},
        })

    async def test_passthrough_forwards_suffix(self) -> None:
        async with self.client.request("GET", "/api/repos/w3c/alpha/issues") as resp:
            self.assertEqual(resp.status, 200)
            self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")
            body = await resp.json()

        self.assertEqual(self.github_client.calls, ["/repos/w3c/alpha/issues"])
        self.assertEqual(body, [{"number": 1}])

    async def test_passthrough_keeps_query_string(self) -> None:
        async with self.client.request("GET", "/api/repos/w3c/alpha/pulls?state=closed") as resp:
            body = await resp.json()

        self.assertEqual(self.github_client.calls, ["/repos/w3c/alpha/pulls?state=closed"])
        self.assertEqual(body, [])

    async def test_passthrough_error_is_null_body(self) -> None:
        async with self.client.request("GET", "/api/boom") as resp:
            self.assertEqual(resp.status, 200)
            body = await resp.json()

        self.assertIsNone(body)

    async def test_unknown_route_still_allows_any_origin(self) -> None:
        async with self.client.request("GET", "/nope") as resp:
            self.assertEqual(resp.status, 404)
            self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")

    def test_upstream_path(self) -> None:
        self.assertEqual(upstream_path("/api/orgs/w3c"), "/orgs/w3c")
        self.assertEqual(upstream_path("/api"), "/")
        self.assertEqual(upstream_path("/api/repos/w3c/api-docs"), "/repos/w3c/api-docs")
