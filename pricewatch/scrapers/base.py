"""Data structures shared by the shop crawler and the proxy manager.

Shops, their parsing rules and proxy-list rules are supplied by storage
and are read-only here. Listings and proxies are produced per crawl.
"""

import math
from dataclasses import dataclass, field
from typing import List, Mapping, Optional
from urllib.parse import urlsplit

from pricewatch.core.exceptions import NotAProxyRow


PAGE_ID_PLACEHOLDER = "__PAGE_ID__"
CATEGORY_ID_PLACEHOLDER = "__CATEGORY_ID__"

# Prices come from text, so rounding artifacts are expected
PRICE_TOLERANCE = 1e-6


@dataclass(frozen=True)
class Shop:
    """Identity of a crawled storefront. Names are unique within the queue."""

    name: str
    url: str = ""
    logo: str = ""
    id: Optional[int] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("name is required")


@dataclass(frozen=True)
class ShopParsingRules:
    """Selectors and URL template describing how to crawl one shop.

    ``parsing_url`` holds ``__PAGE_ID__`` and, when categories are listed,
    ``__CATEGORY_ID__``. An empty ``url_categories`` means one unscoped crawl.
    """

    parsing_url: str
    max_page_lookup: str
    product_table_lookup: str
    product_lookup: str
    name_lookup: str
    price_lookup: str
    url_lookup: str
    url_categories: List[str] = field(default_factory=list)
    look_for_href: bool = False
    sleep_timeout_sec: Optional[float] = None

    def __post_init__(self):
        """Validate the URL template against the category list."""
        if PAGE_ID_PLACEHOLDER not in self.parsing_url:
            raise ValueError(f"parsing_url must contain {PAGE_ID_PLACEHOLDER}")
        if self.url_categories and CATEGORY_ID_PLACEHOLDER not in self.parsing_url:
            raise ValueError(
                f"parsing_url must contain {CATEGORY_ID_PLACEHOLDER} when url_categories is set"
            )
        if self.sleep_timeout_sec is not None and self.sleep_timeout_sec < 0:
            raise ValueError("sleep_timeout_sec must be non-negative")

    def categories(self) -> List[Optional[str]]:
        """Categories to crawl, in order. ``[None]`` stands for the unscoped crawl."""
        if not self.url_categories:
            return [None]
        return list(self.url_categories)

    def parsing_url_for(self, page: int, category: Optional[str] = None) -> str:
        """Fill the URL template for one page of one category.

        Args:
            page: 1-based page number
            category: Category id, or None for the unscoped crawl

        Returns:
            Concrete page URL
        """
        url = self.parsing_url.replace(PAGE_ID_PLACEHOLDER, str(page))
        if category is not None:
            url = url.replace(CATEGORY_ID_PLACEHOLDER, category)
        return url


@dataclass(eq=False)
class Listing:
    """One scraped product price for a shop.

    Equality tolerates tiny price differences; listings are not hashable.
    """

    shop: Shop
    full_name: str
    price: float
    url: str

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Listing):
            return NotImplemented
        return (
            self.shop == other.shop
            and self.full_name == other.full_name
            and self.url == other.url
            and math.isclose(self.price, other.price, rel_tol=0.0, abs_tol=PRICE_TOLERANCE)
        )


@dataclass(frozen=True)
class ProxyParsingRules:
    """Selectors describing the proxy table on one proxy-list source."""

    table_lookup: str
    head_lookup: str
    row_lookup: str
    data_lookup: str


@dataclass(frozen=True)
class Proxy:
    """Anonymizing HTTP proxy endpoint."""

    ip: str
    port: int
    https: bool = False

    IP_COLUMN = "IP Address"
    PORT_COLUMN = "Port"
    HTTPS_COLUMN = "Https"

    def __str__(self) -> str:
        scheme = "https" if self.https else "http"
        return f"{scheme}://{self.ip}:{self.port}"

    @property
    def url(self) -> str:
        return str(self)

    @classmethod
    def from_row(cls, row: Mapping[str, str]) -> "Proxy":
        """Build a proxy from a proxy-list row keyed by column name.

        Args:
            row: Mapping of header name to cell text

        Returns:
            Proxy instance

        Raises:
            NotAProxyRow: If the IP, a valid port or the https flag is missing
        """
        ip = (row.get(cls.IP_COLUMN) or "").strip()
        if not ip:
            raise NotAProxyRow(cls.IP_COLUMN)

        port = _parse_port(row.get(cls.PORT_COLUMN))
        if port is None:
            raise NotAProxyRow(cls.PORT_COLUMN)

        https = row.get(cls.HTTPS_COLUMN)
        if https is None:
            raise NotAProxyRow(cls.HTTPS_COLUMN)

        return cls(ip=ip, port=port, https=https.strip().lower() == "yes")

    @classmethod
    def from_url(cls, url: str) -> "Proxy":
        """Build a proxy from ``http://ip:port`` or ``https://ip:port``.

        Raises:
            ValueError: If the URL has an unsupported scheme, no host or no port
        """
        parts = urlsplit(url.strip())
        if parts.scheme not in ("http", "https"):
            raise ValueError(f"Unsupported proxy scheme: {url!r}")
        if not parts.hostname or parts.port is None:
            raise ValueError(f"Proxy URL needs a host and a port: {url!r}")
        return cls(ip=parts.hostname, port=parts.port, https=parts.scheme == "https")


def _parse_port(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    value = value.strip()
    if not value.isascii() or not value.isdigit():
        return None
    port = int(value)
    if port > 65535:
        return None
    return port
