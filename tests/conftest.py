"""Pytest configuration and shared fixtures."""

import random
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

import httpx
import pytest

from pricewatch.scrapers.base import Proxy, ProxyParsingRules, Shop, ShopParsingRules
from pricewatch.scrapers.utils.client_factory import ClientFactory
from pricewatch.scrapers.utils.rate_limiter import PageThrottle
from pricewatch.scrapers.worker_pool import WorkerPool
from pricewatch.storage.in_memory import InMemoryStorage


SHOP_URL = "https://shop.example.com"
PROXY_SOURCE = "https://proxies.example.com/list"

# A page is an HTML body, (status, body), an exception to raise, or a
# callable producing one of those from the request
Page = Union[str, Tuple[int, str], Exception, Callable[[httpx.Request], object]]


# ============================================================================
# HTML BUILDERS
# ============================================================================

def product_page(
    products: Iterable[Tuple[str, str, str]] = (),
    pagination: Sequence[str] = (),
    tables: int = 1,
) -> str:
    """Render a listing page with ``tables`` copies of the product table."""
    rows = "".join(
        f'<div class="product"><h3 class="name">{name}</h3>'
        f'<span class="price">{price}</span>'
        f'<a class="link" href="{url}">{url}</a></div>'
        for name, price, url in products
    )
    body = "".join(f'<div class="products">{rows}</div>' for _ in range(tables))
    pages = "".join(f"<li>{item}</li>" for item in pagination)
    return f'<html><body>{body}<ul class="pagination">{pages}</ul></body></html>'


def proxy_page(head: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Render a proxy-list page with one table."""
    header = "".join(f"<th>{name}</th>" for name in head)
    body = "".join(
        "<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows
    )
    return (
        f"<html><body><table><thead><tr>{header}</tr></thead>"
        f"<tbody>{body}</tbody></table></body></html>"
    )


# ============================================================================
# FAKE HTTP
# ============================================================================

class MockClientFactory(ClientFactory):
    """Client factory whose clients answer from an in-memory page map.

    Page clients serve ``pages`` (unknown URLs answer 404 with an empty
    page). Health-check clients succeed only for proxies in ``healthy``.
    """

    def __init__(self, pages: Optional[Dict[str, Page]] = None, healthy: Iterable[Proxy] = ()):
        super().__init__()
        self.pages: Dict[str, Page] = dict(pages or {})
        self.healthy: Set[Proxy] = set(healthy)
        self.requested: List[str] = []
        self.routes: List[Optional[Proxy]] = []
        self.checked: List[Proxy] = []

    def _serve(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        page = self.pages.get(url)
        if callable(page):
            page = page(request)
        if page is None:
            return httpx.Response(404, text="<html><body></body></html>")
        if isinstance(page, Exception):
            raise page
        if isinstance(page, tuple):
            status, text = page
            return httpx.Response(status, text=text)
        return httpx.Response(200, text=page)

    def build(self, proxy: Optional[Proxy] = None, timeout: Optional[float] = None) -> httpx.Client:
        self.routes.append(proxy)
        return httpx.Client(transport=httpx.MockTransport(self._serve), follow_redirects=True)

    def build_async(
        self, proxy: Optional[Proxy] = None, timeout: Optional[float] = None
    ) -> httpx.AsyncClient:
        self.checked.append(proxy)

        def answer(request: httpx.Request) -> httpx.Response:
            if proxy in self.healthy:
                return httpx.Response(200, text="ok")
            raise httpx.ConnectTimeout("timed out", request=request)

        return httpx.AsyncClient(transport=httpx.MockTransport(answer))


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def shop() -> Shop:
    return Shop(name="Example Shop", url=SHOP_URL)


@pytest.fixture
def rules() -> ShopParsingRules:
    """Parsing rules without categories or page delay."""
    return ShopParsingRules(
        parsing_url=f"{SHOP_URL}/all?page=__PAGE_ID__",
        max_page_lookup="ul.pagination li",
        product_table_lookup="div.products",
        product_lookup="div.product",
        name_lookup="h3.name",
        price_lookup="span.price",
        url_lookup="a.link",
        look_for_href=True,
    )


@pytest.fixture
def proxy_rules() -> ProxyParsingRules:
    return ProxyParsingRules(
        table_lookup="table",
        head_lookup="thead th",
        row_lookup="tbody tr",
        data_lookup="td",
    )


@pytest.fixture
def proxies() -> List[Proxy]:
    return [
        Proxy("10.0.0.1", 8080, https=False),
        Proxy("10.0.0.2", 3128, https=True),
        Proxy("10.0.0.3", 80, https=False),
    ]


@pytest.fixture
def proxy_list_html(proxies: List[Proxy]) -> str:
    return proxy_page(
        ["IP Address", "Port", "Code", "Https"],
        [[p.ip, str(p.port), "DE", "yes" if p.https else "no"] for p in proxies],
    )


@pytest.fixture
def storage(shop: Shop, rules: ShopParsingRules, proxy_rules: ProxyParsingRules) -> InMemoryStorage:
    return InMemoryStorage(
        shops=[shop],
        parsing_rules={shop.name: rules},
        proxy_sources={PROXY_SOURCE: proxy_rules},
    )


@pytest.fixture
def worker_pool():
    pool = WorkerPool(max_workers=2, max_pending=4)
    yield pool
    pool.shutdown()


@pytest.fixture
def sleeps() -> List[float]:
    """Delays recorded by the page throttle instead of sleeping."""
    return []


@pytest.fixture
def throttle(sleeps: List[float]) -> PageThrottle:
    return PageThrottle(max_jitter=0.5, rng=random.Random(7), sleep=sleeps.append)
