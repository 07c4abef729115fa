"""Shop crawler: listings extraction, proxy acquisition and crawl orchestration.

This package provides:
- Data structures for shops, parsing rules, listings and proxies
- Selector-based extraction of listings and proxy tables
- A bounded worker pool for the blocking crawl work

The proxy manager, positions parser, service and scheduler live in their
own modules since they depend on the storage layer.
"""

from .base import (
    Listing,
    Proxy,
    ProxyParsingRules,
    Shop,
    ShopParsingRules,
)
from .worker_pool import WorkerPool

__all__ = [
    # Data structures
    "Listing",
    "Proxy",
    "ProxyParsingRules",
    "Shop",
    "ShopParsingRules",
    # Worker pool
    "WorkerPool",
]
