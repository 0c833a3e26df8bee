import logging
from typing import Any, Awaitable, Callable

from aiohttp import web

from src.application.cycle_controller import SnapshotStore
from src.domain.exceptions import UpstreamError
from src.infrastructure.github_client import GitHubRestClient

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

STORE_KEY = web.AppKey("snapshot_store", SnapshotStore)
CLIENT_KEY = web.AppKey("github_client", GitHubRestClient)


@web.middleware
async def allow_any_origin(
        request: web.Request,
        handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
) -> web.StreamResponse:
    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers["Access-Control-Allow-Origin"] = "*"
        raise
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


async def get_projects(request: web.Request) -> web.Response:
    """Serves the current snapshot, whatever the state of the running cycle."""
    snapshot = request.app[STORE_KEY].current()
    return web.json_response({name: record.to_public() for name, record in snapshot.items()})


def upstream_path(path_qs: str) -> str:
    """Strips the passthrough prefix, keeping the rest of the path and query string as-is."""
    suffix = path_qs[len(API_PREFIX):] if path_qs.startswith(API_PREFIX) else path_qs
    return suffix or "/"


async def proxy_api(request: web.Request) -> web.Response:
    """Forwards the request path to GitHub; upstream failures answer 200 with a null body."""
    logger.info(request.path_qs)
    body: Any = None
    try:
        body = await request.app[CLIENT_KEY].get(upstream_path(request.raw_path))
    except UpstreamError as e:
        logger.warning(f"Passthrough failed: {e}")
    return web.json_response(body)


def create_app(store: SnapshotStore, github_client: GitHubRestClient) -> web.Application:
    app = web.Application(middlewares=[allow_any_origin])
    app[STORE_KEY] = store
    app[CLIENT_KEY] = github_client
    app.router.add_get("/projects", get_projects)
    app.router.add_get(API_PREFIX + "/{tail:.*}", proxy_api)
    return app
