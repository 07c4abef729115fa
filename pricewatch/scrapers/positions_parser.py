"""Shop crawl orchestration.

One ``parse()`` call crawls every category and page of a shop through a
single freshly acquired proxy. Any crawler failure restarts the whole crawl
with a new proxy until the attempt budget runs out.
"""

from typing import List, Optional, Tuple

import httpx
import structlog
from bs4 import BeautifulSoup
from tenacity import RetryError

from pricewatch.core.exceptions import CrawlerError, NoProxyAvailable, TransportError
from pricewatch.scrapers.base import Listing, Proxy, Shop, ShopParsingRules
from pricewatch.scrapers.extractor import extract_listings, extract_page_count, parse_document
from pricewatch.scrapers.proxy_manager import ProxyManager
from pricewatch.scrapers.utils.client_factory import ClientFactory
from pricewatch.scrapers.utils.rate_limiter import PageThrottle
from pricewatch.scrapers.utils.retry import crawl_retrying
from pricewatch.scrapers.worker_pool import WorkerPool
from pricewatch.storage.base import Storage

logger = structlog.get_logger(__name__)


class PositionsParser:
    """Crawls shops into listings ("positions").

    The async side acquires proxies and drives retries; the crawl of one
    shop through one proxy runs as a single blocking unit on the worker pool.
    """

    def __init__(
        self,
        proxy_manager: ProxyManager,
        worker_pool: WorkerPool,
        storage: Optional[Storage] = None,
        client_factory: Optional[ClientFactory] = None,
        throttle: Optional[PageThrottle] = None,
        max_attempts: int = 3,
        retry_wait: float = 0.0,
        skip_failed_categories: bool = False,
    ):
        """Initialize positions parser.

        Args:
            proxy_manager: Source of a healthy proxy per attempt
            worker_pool: Pool running the blocking shop crawls
            storage: Shop queue used by ``parse_next``
            client_factory: Builds the proxied page clients
            throttle: Courtesy delay between pages of one category
            max_attempts: Whole-crawl attempts before giving up on a shop
            retry_wait: Pause between attempts in seconds
            skip_failed_categories: Log and skip a failing category instead
                of failing the attempt
        """
        self.proxy_manager = proxy_manager
        self.worker_pool = worker_pool
        self.storage = storage
        self.client_factory = client_factory or ClientFactory()
        self.throttle = throttle or PageThrottle()
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait
        self.skip_failed_categories = skip_failed_categories
        self.logger = logger.bind(service="positions_parser")

    async def parse_next(self) -> Tuple[Shop, List[Listing]]:
        """Crawl the shop that storage says is due next.

        Raises:
            ShopNotFoundError: If no shop is queued
            ParsingRulesNotFoundError: If the shop has no rules
            NoProxyAvailable: If every crawl attempt failed
        """
        if self.storage is None:
            raise RuntimeError("parse_next needs a storage")
        shop = await self.storage.get_next_shop()
        rules = await self.storage.get_parsing_rules(shop)
        return await self.parse(shop, rules)

    async def parse(self, shop: Shop, rules: ShopParsingRules) -> Tuple[Shop, List[Listing]]:
        """Crawl all categories and pages of a shop.

        Args:
            shop: Shop to crawl
            rules: The shop's parsing rules

        Returns:
            The shop and its listings in category, page, then document order

        Raises:
            NoProxyAvailable: After the last failed attempt, chained to the
                cause of that attempt
        """
        log = self.logger.bind(shop=shop.name)
        log.info("shop_crawl_started", categories=len(rules.categories()))

        listings: List[Listing] = []
        try:
            async for attempt in crawl_retrying(self.max_attempts, self.retry_wait):
                with attempt:
                    proxy = await self.proxy_manager.acquire()
                    listings = await self.worker_pool.submit(self.crawl_shop, shop, rules, proxy)
        except RetryError as e:
            last_cause = e.last_attempt.exception()
            log.error(
                "shop_crawl_failed",
                attempts=e.last_attempt.attempt_number,
                error_type=type(last_cause).__name__,
                error=str(last_cause),
            )
            raise NoProxyAvailable.after_attempts(
                e.last_attempt.attempt_number, last_cause
            ) from last_cause

        log.info("shop_crawl_completed", listings=len(listings))
        return shop, listings

    def crawl_shop(self, shop: Shop, rules: ShopParsingRules, proxy: Proxy) -> List[Listing]:
        """Crawl every category of a shop through one proxy. Blocking."""
        listings: List[Listing] = []
        with self.client_factory.build(proxy) as client:
            for category in rules.categories():
                try:
                    listings.extend(self.crawl_category(client, shop, rules, category))
                except CrawlerError as e:
                    if not self.skip_failed_categories:
                        raise
                    self.logger.warning(
                        "category_skipped",
                        shop=shop.name,
                        category=category,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
        return listings

    def crawl_category(
        self,
        client: httpx.Client,
        shop: Shop,
        rules: ShopParsingRules,
        category: Optional[str],
    ) -> List[Listing]:
        """Crawl page 1 of a category, then every further page it advertises.

        Raises:
            TransportError: If a page cannot be fetched
            SelectorError: If the rules do not fit a page
        """
        document = self.fetch_document(client, rules.parsing_url_for(1, category))
        listings = extract_listings(shop, rules, document)
        max_page = extract_page_count(rules, document)

        for page in range(2, max_page + 1):
            self.throttle.wait(rules.sleep_timeout_sec)
            document = self.fetch_document(client, rules.parsing_url_for(page, category))
            listings.extend(extract_listings(shop, rules, document))

        self.logger.debug(
            "category_crawled",
            shop=shop.name,
            category=category,
            pages=max(max_page, 1),
            listings=len(listings),
        )
        return listings

    def fetch_document(self, client: httpx.Client, url: str) -> BeautifulSoup:
        """GET one page and parse it.

        Error statuses are logged but the body is still parsed: shops often
        answer out-of-range pages with an error page that simply has no rows.

        Raises:
            TransportError: If the request fails or times out
        """
        try:
            response = client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(url, str(e)) from e

        if not response.is_success:
            self.logger.warning("page_error_status", url=url, status=response.status_code)
        return parse_document(response.text)
