"""Process-local storage backed by plain collections."""

from collections import deque
from pathlib import Path
from typing import Deque, Dict, Iterable, List, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from pricewatch.core.exceptions import (
    ConfigurationError,
    ParsingRulesNotFoundError,
    ShopNotFoundError,
)
from pricewatch.scrapers.base import Listing, ProxyParsingRules, Shop, ShopParsingRules
from pricewatch.storage.base import Storage
from pricewatch.storage.schemas import FileStructure

logger = structlog.get_logger(__name__)


class InMemoryStorage(Storage):
    """Round-robin shop queue with rules and latest listings held in memory.

    ``get_next_shop`` pops from the front of the queue and ``requeue_shop``
    appends to the back, so shops are crawled in turn. Shop names are unique.
    """

    def __init__(
        self,
        shops: Iterable[Shop] = (),
        parsing_rules: Optional[Mapping[str, ShopParsingRules]] = None,
        proxy_sources: Optional[Mapping[str, ProxyParsingRules]] = None,
        listings: Optional[Mapping[str, List[Listing]]] = None,
    ):
        """Initialize in-memory storage.

        Args:
            shops: Initial queue, in crawl order
            parsing_rules: Shop parsing rules keyed by shop name
            proxy_sources: Proxy-list rules keyed by source URL
            listings: Previously saved listings keyed by shop name
        """
        self._queue: Deque[Shop] = deque()
        for shop in shops:
            self._enqueue(shop)
        self._parsing_rules: Dict[str, ShopParsingRules] = dict(parsing_rules or {})
        self._proxy_sources: Dict[str, ProxyParsingRules] = dict(proxy_sources or {})
        self._listings: Dict[str, List[Listing]] = {
            name: list(items) for name, items in (listings or {}).items()
        }

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "InMemoryStorage":
        """Load storage contents from a JSON data file.

        Raises:
            ConfigurationError: If the file is missing or does not validate
        """
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read data file {path}: {e}") from e

        try:
            data = FileStructure.model_validate_json(raw)
            shops = [entry.to_shop() for entry in data.shops]
            by_name = {shop.name: shop for shop in shops}
            storage = cls(
                shops=shops,
                parsing_rules={
                    name: rules.to_rules() for name, rules in data.shops_parsing_rules.items()
                },
                proxy_sources={
                    source: rules.to_rules() for source, rules in data.proxy_parsing_rules.items()
                },
                listings={
                    name: [p.to_listing(by_name.get(name) or Shop(name=name)) for p in positions]
                    for name, positions in data.positions.items()
                },
            )
        except (ValidationError, ValueError) as e:
            raise ConfigurationError(f"Invalid data file {path}: {e}") from e

        logger.info(
            "data_file_loaded",
            path=str(path),
            shops=len(shops),
            proxy_sources=len(data.proxy_parsing_rules),
        )
        return storage

    def _enqueue(self, shop: Shop) -> None:
        if any(queued.name == shop.name for queued in self._queue):
            raise ValueError(f"Shop {shop.name!r} is already queued")
        self._queue.append(shop)

    @property
    def queued_shops(self) -> List[Shop]:
        return list(self._queue)

    async def get_next_shop(self) -> Shop:
        if not self._queue:
            raise ShopNotFoundError()
        return self._queue.popleft()

    async def get_parsing_rules(self, shop: Shop) -> ShopParsingRules:
        rules = self._parsing_rules.get(shop.name)
        if rules is None:
            raise ParsingRulesNotFoundError(shop.name)
        return rules

    async def get_proxy_source_rules(self) -> Dict[str, ProxyParsingRules]:
        return dict(self._proxy_sources)

    async def save_listings(self, shop: Shop, listings: List[Listing]) -> None:
        self._listings[shop.name] = list(listings)
        logger.debug("listings_saved", shop=shop.name, count=len(listings))

    async def requeue_shop(self, shop: Shop) -> None:
        self._enqueue(shop)

    async def get_listings(self, shop: Shop) -> List[Listing]:
        return list(self._listings.get(shop.name, []))
