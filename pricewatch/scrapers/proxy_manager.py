"""Proxy acquisition: harvest public proxy lists and health-check candidates.

Free proxy lists are volatile (entries die within minutes), so nothing is
cached between acquisitions. Every ``acquire()`` re-reads the source rules,
re-harvests every source and re-checks the fresh candidates.
"""

import random
from typing import List, Mapping, Optional

import httpx
import structlog

from pricewatch.core.exceptions import (
    CrawlerError,
    NoProxyAvailable,
    NotAProxyRow,
    TransportError,
)
from pricewatch.scrapers.base import Proxy, ProxyParsingRules
from pricewatch.scrapers.extractor import extract_proxy_table, parse_document, zip_proxy_rows
from pricewatch.scrapers.utils.client_factory import ClientFactory
from pricewatch.scrapers.worker_pool import WorkerPool
from pricewatch.storage.base import Storage

logger = structlog.get_logger(__name__)


DEFAULT_CHECK_URL = "http://www.google.com"


class ProxyManager:
    """Finds one working proxy per call.

    Stateless apart from its collaborators: the storage that provides
    proxy-list sources with their parsing rules, and the known-reachable URL
    used for health checks.
    """

    def __init__(
        self,
        storage: Storage,
        worker_pool: WorkerPool,
        client_factory: Optional[ClientFactory] = None,
        check_url: str = DEFAULT_CHECK_URL,
        check_timeout: float = 1.0,
        rng: Optional[random.Random] = None,
    ):
        """Initialize proxy manager.

        Args:
            storage: Source of the proxy-list rules
            worker_pool: Pool running the blocking harvest
            client_factory: Builds the direct and proxied HTTP clients
            check_url: URL a healthy proxy must be able to reach
            check_timeout: Seconds a health check may take
            rng: Random source used to shuffle candidates
        """
        self.storage = storage
        self.worker_pool = worker_pool
        self.client_factory = client_factory or ClientFactory()
        self.check_url = check_url
        self.check_timeout = check_timeout
        self._rng = rng or random.Random()
        self.logger = logger.bind(service="proxy_manager")

    async def acquire(self) -> Proxy:
        """Harvest candidates and return the first healthy one.

        Returns:
            A proxy that just answered a health check

        Raises:
            NoProxyAvailable: If the pool is empty or no candidate is healthy
        """
        sources = await self.storage.get_proxy_source_rules()
        candidates = await self.worker_pool.submit(self.harvest, sources)
        self._rng.shuffle(candidates)

        proxy = await self.find_healthy(candidates)
        if proxy is None:
            self.logger.warning("no_proxy_available", candidates=len(candidates))
            raise NoProxyAvailable(f"No healthy proxy among {len(candidates)} candidates")

        self.logger.info("proxy_acquired", proxy=str(proxy), candidates=len(candidates))
        return proxy

    def harvest(self, sources: Mapping[str, ProxyParsingRules]) -> List[Proxy]:
        """Collect proxy candidates from every source. Blocking.

        A source that cannot be fetched or parsed is logged and skipped;
        candidates from the other sources still count.

        Args:
            sources: Mapping of proxy-list URL to its parsing rules

        Returns:
            Candidate pool, in source then row order
        """
        candidates: List[Proxy] = []
        with self.client_factory.build() as client:
            for source, rules in sources.items():
                try:
                    found = self.harvest_source(client, source, rules)
                except CrawlerError as e:
                    self.logger.warning(
                        "proxy_source_failed",
                        source=source,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    continue
                self.logger.debug("proxy_source_harvested", source=source, count=len(found))
                candidates.extend(found)

        self.logger.info("proxies_harvested", sources=len(sources), count=len(candidates))
        return candidates

    def harvest_source(
        self, client: httpx.Client, source: str, rules: ProxyParsingRules
    ) -> List[Proxy]:
        """Fetch one proxy-list page and turn its table into proxies.

        Rows missing an IP, port or https column are dropped.

        Raises:
            TransportError: If the page cannot be fetched
            SelectorError: If the rules do not fit the page
        """
        try:
            response = client.get(source)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(source, str(e)) from e

        document = parse_document(response.text)
        head, rows = extract_proxy_table(document, rules, source)

        proxies = []
        for record in zip_proxy_rows(head, rows):
            try:
                proxies.append(Proxy.from_row(record))
            except NotAProxyRow as e:
                self.logger.debug("proxy_row_skipped", source=source, missing=e.missing)
        return proxies

    async def find_healthy(self, candidates: List[Proxy]) -> Optional[Proxy]:
        """Check candidates in order and return the first that passes."""
        for proxy in candidates:
            if await self.check(proxy):
                return proxy
        return None

    async def check(self, proxy: Proxy) -> bool:
        """Health-check one proxy with a short GET to the check URL.

        Timeouts, refused connections and non-2xx answers mark the candidate
        unusable; they are not errors.
        """
        try:
            async with self.client_factory.build_async(proxy, timeout=self.check_timeout) as client:
                response = await client.get(self.check_url)
        except (CrawlerError, httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.debug("proxy_check_failed", proxy=str(proxy), error=str(e))
            return False

        if not response.is_success:
            self.logger.debug("proxy_check_rejected", proxy=str(proxy), status=response.status_code)
            return False
        return True
