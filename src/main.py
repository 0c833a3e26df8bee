import asyncio
import logging
import sys

from aiohttp import web
from dotenv import load_dotenv

from src.application.aggregator import RepositoryAggregator
from src.application.cycle_controller import AggregationCycleController, SnapshotStore
from src.application.repository_lister import RepositoryLister
from src.application.scheduler import RefreshScheduler
from src.domain.exceptions import ConfigurationError
from src.domain.settings import Settings
from src.infrastructure.github_client import GitHubRestClient
from src.infrastructure.http_api import create_app
from src.infrastructure.progress import create_progress_reporter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)

async def serve(settings: Settings) -> None:
    progress = create_progress_reporter(settings.progress_bar)
    store = SnapshotStore()

    async with GitHubRestClient(token=settings.token, api_url=settings.api_url) as github_client:
        lister = RepositoryLister(github_client, page_size=settings.page_size, progress=progress)
        aggregator = RepositoryAggregator(
            github_client,
            organization=settings.organization,
            web_url=settings.web_url,
            max_concurrent_requests=settings.max_concurrent_requests,
        )
        controller = AggregationCycleController(
            lister, aggregator, settings.organization, store=store, progress=progress
        )
        scheduler = RefreshScheduler(controller.run_cycle, settings.refresh_period_seconds)

        runner = web.AppRunner(create_app(store, github_client))
        await runner.setup()
        site = web.TCPSite(runner, settings.host, settings.port)
        await site.start()
        logger.info(f"listening on port {settings.port}")

        try:
            await scheduler.start()
        finally:
            await scheduler.stop()
            await runner.cleanup()

async def main():
    # Load environment variables from .env file
    load_dotenv()

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    logging.getLogger().setLevel(settings.log_level.upper())

    try:
        await serve(settings)
    except asyncio.CancelledError:
        logger.info("Aggregator stopped.")
    except Exception as e:
        logger.exception(f"An unexpected error occurred: {e}")
        sys.exit(1)

def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user. Exiting gracefully.")

if __name__ == "__main__":
    run()
