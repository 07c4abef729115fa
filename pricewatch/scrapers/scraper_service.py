"""Crawl cycle service.

Connects the positions parser with storage: take the next shop, crawl it,
save what was found and put the shop back in the rotation.
"""

import time
from typing import Any, Dict

import structlog

from pricewatch.core.exceptions import PriceWatchException
from pricewatch.scrapers.positions_parser import PositionsParser
from pricewatch.scrapers.utils.normalizer import PriceNormalizer
from pricewatch.storage.base import Storage

logger = structlog.get_logger(__name__)


class ScraperService:
    """Runs one crawl cycle at a time against a storage backend."""

    def __init__(self, storage: Storage, parser: PositionsParser):
        """Initialize scraper service.

        Args:
            storage: Shop queue and listing sink
            parser: Parser that crawls one shop
        """
        self.storage = storage
        self.parser = parser
        self.logger = logger.bind(service="scraper_service")

    async def run_once(self) -> Dict[str, Any]:
        """Crawl the next due shop and store its listings.

        The shop is requeued whether or not the crawl succeeds, so one broken
        shop never stalls the rotation. Crawl errors are logged and re-raised.

        Returns:
            Dict with cycle statistics:
                - shop: Name of the crawled shop
                - listings_found: Number of listings saved
                - unparsed_prices: Listings whose price text did not parse
                - duration_seconds: Wall time of the cycle

        Raises:
            ShopNotFoundError: If no shop is queued
            NoProxyAvailable: If every crawl attempt failed
        """
        start = time.monotonic()
        shop = await self.storage.get_next_shop()
        self.logger.info("crawl_cycle_started", shop=shop.name)

        try:
            rules = await self.storage.get_parsing_rules(shop)
            _, listings = await self.parser.parse(shop, rules)
            await self.storage.save_listings(shop, listings)
        except PriceWatchException as e:
            self.logger.error(
                "crawl_cycle_failed",
                shop=shop.name,
                error_type=type(e).__name__,
                error=str(e),
                duration_seconds=round(time.monotonic() - start, 2),
            )
            raise
        finally:
            await self.storage.requeue_shop(shop)

        stats = {
            "shop": shop.name,
            "listings_found": len(listings),
            "unparsed_prices": sum(
                1 for listing in listings if PriceNormalizer.is_sentinel(listing.price)
            ),
            "duration_seconds": round(time.monotonic() - start, 2),
        }
        self.logger.info("crawl_cycle_completed", **stats)
        return stats

