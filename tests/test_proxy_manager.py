"""Tests for proxy harvesting and health checks."""

import random

import httpx
import pytest

from pricewatch.core.exceptions import NoProxyAvailable
from pricewatch.scrapers.base import Proxy
from pricewatch.scrapers.proxy_manager import ProxyManager
from pricewatch.storage.in_memory import InMemoryStorage

from conftest import PROXY_SOURCE, MockClientFactory, proxy_page


OTHER_SOURCE = "https://other-proxies.example.com/list"


@pytest.fixture
def manager_for(storage, worker_pool):
    def build(factory: MockClientFactory, source_storage=None) -> ProxyManager:
        return ProxyManager(
            source_storage or storage,
            worker_pool,
            client_factory=factory,
            check_url="http://check.example.com/",
            rng=random.Random(1),
        )

    return build


class TestHarvest:
    """Tests for ProxyManager.harvest."""

    def test_reads_every_row_of_the_table(self, manager_for, proxy_rules, proxies, proxy_list_html):
        factory = MockClientFactory({PROXY_SOURCE: proxy_list_html})
        candidates = manager_for(factory).harvest({PROXY_SOURCE: proxy_rules})
        assert candidates == proxies
        # harvest fetches directly, never through a proxy
        assert factory.routes == [None]

    def test_column_order_does_not_matter(self, manager_for, proxy_rules):
        html = proxy_page(["Https", "Port", "IP Address"], [["yes", "8443", "7.7.7.7"]])
        factory = MockClientFactory({PROXY_SOURCE: html})
        assert manager_for(factory).harvest({PROXY_SOURCE: proxy_rules}) == [
            Proxy("7.7.7.7", 8443, https=True)
        ]

    def test_rows_without_https_column_are_dropped(self, manager_for, proxy_rules):
        html = proxy_page(["IP Address", "Port"], [["7.7.7.7", "80"]])
        factory = MockClientFactory({PROXY_SOURCE: html})
        assert manager_for(factory).harvest({PROXY_SOURCE: proxy_rules}) == []

    def test_failing_source_does_not_drop_others(self, manager_for, proxy_rules, proxies, proxy_list_html):
        factory = MockClientFactory(
            {
                OTHER_SOURCE: httpx.ConnectError("refused"),
                PROXY_SOURCE: proxy_list_html,
            }
        )
        candidates = manager_for(factory).harvest(
            {OTHER_SOURCE: proxy_rules, PROXY_SOURCE: proxy_rules}
        )
        assert candidates == proxies

    def test_source_without_table_is_skipped(self, manager_for, proxy_rules, proxies, proxy_list_html):
        factory = MockClientFactory(
            {OTHER_SOURCE: "<html><p>maintenance</p></html>", PROXY_SOURCE: proxy_list_html}
        )
        candidates = manager_for(factory).harvest(
            {OTHER_SOURCE: proxy_rules, PROXY_SOURCE: proxy_rules}
        )
        assert candidates == proxies


class TestHealthCheck:
    """Tests for ProxyManager.check / find_healthy."""

    async def test_first_healthy_candidate_wins(self, manager_for, proxies):
        factory = MockClientFactory(healthy=proxies[1:])
        manager = manager_for(factory)

        assert await manager.find_healthy(proxies) == proxies[1]
        # checking stops at the first success
        assert factory.checked == proxies[:2]

    async def test_no_healthy_candidate(self, manager_for, proxies):
        manager = manager_for(MockClientFactory())
        assert await manager.find_healthy(proxies) is None

    async def test_check_failure_is_not_an_error(self, manager_for, proxies):
        manager = manager_for(MockClientFactory())
        assert await manager.check(proxies[0]) is False


class TestAcquire:
    """Tests for ProxyManager.acquire."""

    async def test_returns_healthy_harvested_proxy(self, manager_for, proxies, proxy_list_html):
        factory = MockClientFactory({PROXY_SOURCE: proxy_list_html}, healthy=[proxies[2]])
        assert await manager_for(factory).acquire() == proxies[2]

    async def test_checks_harvested_candidates(self, manager_for, proxies, proxy_list_html):
        factory = MockClientFactory({PROXY_SOURCE: proxy_list_html})
        with pytest.raises(NoProxyAvailable):
            await manager_for(factory).acquire()
        assert sorted(factory.checked, key=str) == sorted(proxies, key=str)

    async def test_empty_pool_raises(self, manager_for, proxy_rules):
        factory = MockClientFactory({PROXY_SOURCE: proxy_page(["IP Address", "Port", "Https"], [])})
        with pytest.raises(NoProxyAvailable):
            await manager_for(factory).acquire()
        assert factory.checked == []

    async def test_no_sources_raises(self, manager_for):
        with pytest.raises(NoProxyAvailable):
            await manager_for(MockClientFactory(), InMemoryStorage()).acquire()
