"""Tests for the shop crawl orchestration."""

import dataclasses
from typing import List, Optional

import httpx
import pytest

from pricewatch.core.exceptions import (
    NoProxyAvailable,
    ShopNotFoundError,
    TransportError,
    WorkerPoolSaturated,
)
from pricewatch.scrapers.base import Listing, Proxy
from pricewatch.scrapers.positions_parser import PositionsParser
from pricewatch.storage.in_memory import InMemoryStorage

from conftest import SHOP_URL, MockClientFactory, product_page


class StaticProxyManager:
    """Proxy manager double handing out a fixed sequence of outcomes."""

    def __init__(self, outcomes: List[object]):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def acquire(self) -> Proxy:
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


PROXY = Proxy("10.0.0.1", 8080)


@pytest.fixture
def make_parser(worker_pool, throttle):
    def build(
        factory: MockClientFactory,
        proxy_manager: Optional[StaticProxyManager] = None,
        **kwargs,
    ) -> PositionsParser:
        return PositionsParser(
            proxy_manager or StaticProxyManager([PROXY]),
            worker_pool,
            client_factory=factory,
            throttle=throttle,
            **kwargs,
        )

    return build


def page_url(page: int, category: Optional[str] = None) -> str:
    if category is None:
        return f"{SHOP_URL}/all?page={page}"
    return f"{SHOP_URL}/{category}?page={page}"


# ============================================================================
# TESTS: PAGINATION
# ============================================================================

class TestPagination:
    """Tests for category and page traversal."""

    async def test_follows_pagination(self, make_parser, shop, rules):
        factory = MockClientFactory(
            {
                page_url(1): product_page([("A", "1,00 €", "/a")], ["1", "2", ">>", "...", "3"]),
                page_url(2): product_page([("B", "2,00 €", "/b")]),
                page_url(3): product_page([("C", "3,00 €", "/c")]),
            }
        )
        returned_shop, listings = await make_parser(factory).parse(shop, rules)

        assert returned_shop == shop
        assert listings == [
            Listing(shop, "A", 1.0, "/a"),
            Listing(shop, "B", 2.0, "/b"),
            Listing(shop, "C", 3.0, "/c"),
        ]
        assert factory.requested == [page_url(1), page_url(2), page_url(3)]
        assert factory.routes == [PROXY]

    async def test_no_pagination_fetches_each_category_once(self, make_parser, shop, rules):
        rules = dataclasses.replace(
            rules,
            parsing_url=f"{SHOP_URL}/__CATEGORY_ID__?page=__PAGE_ID__",
            url_categories=["laptops", "monitors"],
        )
        factory = MockClientFactory(
            {
                page_url(1, "laptops"): product_page([("Laptop", "900", "/l")]),
                page_url(1, "monitors"): product_page([("Monitor", "200", "/m")]),
            }
        )
        _, listings = await make_parser(factory).parse(shop, rules)

        assert [l.full_name for l in listings] == ["Laptop", "Monitor"]
        assert factory.requested == [page_url(1, "laptops"), page_url(1, "monitors")]

    async def test_single_page_listed_in_pagination(self, make_parser, shop, rules):
        factory = MockClientFactory({page_url(1): product_page([("A", "1", "/a")], ["1"])})
        _, listings = await make_parser(factory).parse(shop, rules)
        assert len(listings) == 1
        assert factory.requested == [page_url(1)]

    async def test_error_status_page_is_still_parsed(self, make_parser, shop, rules):
        factory = MockClientFactory({page_url(1): (503, product_page([("A", "1", "/a")]))})
        _, listings = await make_parser(factory).parse(shop, rules)
        assert [l.full_name for l in listings] == ["A"]


# ============================================================================
# TESTS: THROTTLING
# ============================================================================

class TestThrottle:
    """Tests for the per-page courtesy delay."""

    async def test_no_delay_without_sleep_timeout(self, make_parser, shop, rules, sleeps):
        factory = MockClientFactory({page_url(1): product_page(pagination=["1", "2", "3"])})
        await make_parser(factory).parse(shop, rules)
        assert sleeps == []

    async def test_delay_before_every_further_page(self, make_parser, shop, rules, sleeps):
        rules = dataclasses.replace(rules, sleep_timeout_sec=2.0)
        factory = MockClientFactory({page_url(1): product_page(pagination=["1", "2", "3"])})
        await make_parser(factory).parse(shop, rules)

        assert len(sleeps) == 2
        assert all(2.0 <= delay <= 2.5 for delay in sleeps)


# ============================================================================
# TESTS: RETRIES
# ============================================================================

class TestRetries:
    """Tests for whole-crawl retries."""

    async def test_exhausted_attempts_raise_no_proxy_available(self, make_parser, shop, rules):
        cause = NoProxyAvailable("No healthy proxy among 0 candidates")
        proxy_manager = StaticProxyManager([cause])
        parser = make_parser(MockClientFactory(), proxy_manager)

        with pytest.raises(NoProxyAvailable) as exc_info:
            await parser.parse(shop, rules)

        assert proxy_manager.calls == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_cause is cause
        assert exc_info.value.__cause__ is cause
        assert str(exc_info.value).startswith("3 attempts failed, last cause:")

    async def test_transport_failure_is_the_surfaced_cause(self, make_parser, shop, rules):
        factory = MockClientFactory({page_url(1): httpx.ConnectError("refused")})
        parser = make_parser(factory, max_attempts=2)

        with pytest.raises(NoProxyAvailable) as exc_info:
            await parser.parse(shop, rules)

        assert isinstance(exc_info.value.last_cause, TransportError)
        assert factory.requested == [page_url(1), page_url(1)]

    async def test_recovers_with_fresh_proxy(self, make_parser, shop, rules):
        second = Proxy("10.0.0.2", 3128)
        proxy_manager = StaticProxyManager([PROXY, second])
        answers = iter([httpx.ReadTimeout("slow"), product_page([("A", "1", "/a")])])

        def first_page(request):
            return next(answers)

        factory = MockClientFactory({page_url(1): first_page})
        _, listings = await make_parser(factory, proxy_manager).parse(shop, rules)

        assert [l.full_name for l in listings] == ["A"]
        assert proxy_manager.calls == 2
        assert factory.routes == [PROXY, second]

    async def test_failure_on_later_page_discards_partial_listings(self, make_parser, shop, rules):
        factory = MockClientFactory(
            {
                page_url(1): product_page([("A", "1", "/a")], ["1", "2"]),
                page_url(2): httpx.ConnectError("reset"),
            }
        )
        with pytest.raises(NoProxyAvailable):
            await make_parser(factory).parse(shop, rules)

    async def test_saturated_pool_is_not_retried(self, make_parser, shop, rules):
        proxy_manager = StaticProxyManager([WorkerPoolSaturated(4, 4)])
        with pytest.raises(WorkerPoolSaturated):
            await make_parser(MockClientFactory(), proxy_manager).parse(shop, rules)
        assert proxy_manager.calls == 1


# ============================================================================
# TESTS: CATEGORY FAILURES
# ============================================================================

class TestCategoryFailures:
    """Tests for failing categories."""

    @pytest.fixture
    def category_rules(self, rules):
        return dataclasses.replace(
            rules,
            parsing_url=f"{SHOP_URL}/__CATEGORY_ID__?page=__PAGE_ID__",
            url_categories=["broken", "laptops"],
        )

    @pytest.fixture
    def factory(self):
        return MockClientFactory(
            {
                page_url(1, "broken"): '<div class="products"><div class="product"></div></div>',
                page_url(1, "laptops"): product_page([("Laptop", "900", "/l")]),
            }
        )

    async def test_failed_category_fails_the_attempt(self, make_parser, shop, category_rules, factory):
        with pytest.raises(NoProxyAvailable):
            await make_parser(factory, max_attempts=1).parse(shop, category_rules)

    async def test_failed_category_can_be_skipped(self, make_parser, shop, category_rules, factory):
        parser = make_parser(factory, skip_failed_categories=True)
        _, listings = await parser.parse(shop, category_rules)
        assert [l.full_name for l in listings] == ["Laptop"]


# ============================================================================
# TESTS: PARSE NEXT
# ============================================================================

class TestParseNext:
    """Tests for PositionsParser.parse_next."""

    async def test_crawls_shop_from_storage(self, make_parser, storage, shop):
        factory = MockClientFactory({page_url(1): product_page([("A", "1", "/a")])})
        parser = make_parser(factory, storage=storage)

        crawled, listings = await parser.parse_next()

        assert crawled == shop
        assert len(listings) == 1

    async def test_empty_queue(self, make_parser):
        parser = make_parser(MockClientFactory(), storage=InMemoryStorage())
        with pytest.raises(ShopNotFoundError):
            await parser.parse_next()
