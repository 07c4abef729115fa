"""Storage interface consumed by the crawler.

The crawler only ever talks to this interface; which backend sits behind
it (in-memory or relational) is decided once at startup.
"""

from abc import ABC, abstractmethod
from typing import Dict, List

from pricewatch.scrapers.base import Listing, ProxyParsingRules, Shop, ShopParsingRules


class Storage(ABC):
    """Narrow read-mostly view of shops, parsing rules and scraped listings."""

    @abstractmethod
    async def get_next_shop(self) -> Shop:
        """Take the shop that is due for (re)crawling.

        Raises:
            ShopNotFoundError: If no shop is queued
        """

    @abstractmethod
    async def get_parsing_rules(self, shop: Shop) -> ShopParsingRules:
        """Parsing rules for a shop.

        Raises:
            ParsingRulesNotFoundError: If the shop has no rules
        """

    @abstractmethod
    async def get_proxy_source_rules(self) -> Dict[str, ProxyParsingRules]:
        """Proxy-list source URLs with the rules to read their tables."""

    @abstractmethod
    async def save_listings(self, shop: Shop, listings: List[Listing]) -> None:
        """Persist the listings produced by one crawl of ``shop``."""

    @abstractmethod
    async def requeue_shop(self, shop: Shop) -> None:
        """Put ``shop`` back at the end of the crawl queue."""

    @abstractmethod
    async def get_listings(self, shop: Shop) -> List[Listing]:
        """Latest saved listings of ``shop`` (empty if never crawled)."""

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
