"""Wiring of the crawler components from settings."""

import asyncio
import random
from dataclasses import dataclass
from typing import Optional

import structlog

from pricewatch.config import Settings
from pricewatch.scrapers.positions_parser import PositionsParser
from pricewatch.scrapers.proxy_manager import ProxyManager
from pricewatch.scrapers.scheduler import ScraperScheduler
from pricewatch.scrapers.scraper_service import ScraperService
from pricewatch.scrapers.utils import ClientFactory, PageThrottle
from pricewatch.scrapers.worker_pool import WorkerPool
from pricewatch.storage.base import Storage
from pricewatch.storage.factory import create_storage

logger = structlog.get_logger(__name__)


@dataclass
class Crawler:
    """Fully wired crawler. Owns the worker pool and the storage."""

    settings: Settings
    storage: Storage
    worker_pool: WorkerPool
    proxy_manager: ProxyManager
    parser: PositionsParser
    service: ScraperService

    def scheduler(self) -> ScraperScheduler:
        return ScraperScheduler(self.service, self.settings.PARSING_DELAY_SECONDS)

    async def close(self) -> None:
        # Waits for in-flight units off the event loop
        await asyncio.to_thread(self.worker_pool.shutdown)
        await self.storage.close()


async def create_crawler(
    settings: Settings,
    storage: Optional[Storage] = None,
    client_factory: Optional[ClientFactory] = None,
    rng: Optional[random.Random] = None,
) -> Crawler:
    """Build every crawler component from settings.

    Args:
        settings: Application settings
        storage: Storage to use instead of the configured backend
        client_factory: HTTP client factory to use instead of the default
        rng: Shared random source for proxy shuffling and page jitter

    Returns:
        Wired Crawler; call ``close()`` when done
    """
    if storage is None:
        storage = await create_storage(settings)
    if client_factory is None:
        client_factory = ClientFactory(
            user_agent=settings.USER_AGENT,
            max_redirects=settings.MAX_REDIRECTS,
            timeout=settings.REQUEST_TIMEOUT,
        )
    rng = rng or random.Random()

    worker_pool = WorkerPool(
        max_workers=settings.WORKER_COUNT,
        max_pending=settings.WORKER_MAX_PENDING,
    )
    proxy_manager = ProxyManager(
        storage,
        worker_pool,
        client_factory=client_factory,
        check_url=settings.PROXY_CHECK_URL,
        check_timeout=settings.PROXY_CHECK_TIMEOUT,
        rng=rng,
    )
    parser = PositionsParser(
        proxy_manager,
        worker_pool,
        storage=storage,
        client_factory=client_factory,
        throttle=PageThrottle(max_jitter=settings.PAGE_JITTER_SECONDS, rng=rng),
        max_attempts=settings.CRAWL_ATTEMPTS,
        retry_wait=settings.CRAWL_RETRY_WAIT_SECONDS,
        skip_failed_categories=settings.SKIP_FAILED_CATEGORIES,
    )
    service = ScraperService(storage, parser)

    logger.info(
        "crawler_created",
        backend=settings.STORAGE_BACKEND,
        workers=settings.WORKER_COUNT,
        attempts=settings.CRAWL_ATTEMPTS,
    )
    return Crawler(
        settings=settings,
        storage=storage,
        worker_pool=worker_pool,
        proxy_manager=proxy_manager,
        parser=parser,
        service=service,
    )
