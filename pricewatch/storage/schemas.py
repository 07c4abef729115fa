"""Pydantic schemas for the JSON data file read by the in-memory storage."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from pricewatch.scrapers.base import Listing, ProxyParsingRules, Shop, ShopParsingRules


class ShopSchema(BaseModel):
    """Shop entry."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    url: str = ""
    logo: str = ""
    id: Optional[int] = None

    def to_shop(self) -> Shop:
        return Shop(name=self.name, url=self.url, logo=self.logo, id=self.id)


class ShopParsingRulesSchema(BaseModel):
    """Parsing rules entry, keyed by shop name in the file."""

    model_config = ConfigDict(extra="ignore")

    parsing_url: str
    max_page_lookup: str
    product_table_lookup: str
    product_lookup: str
    name_lookup: str
    price_lookup: str
    url_lookup: str
    url_categories: List[str] = Field(default_factory=list)
    look_for_href: bool = False
    sleep_timeout_sec: Optional[float] = None

    def to_rules(self) -> ShopParsingRules:
        return ShopParsingRules(**self.model_dump())


class ProxyParsingRulesSchema(BaseModel):
    """Proxy-list rules entry, keyed by source URL in the file."""

    table_lookup: str
    head_lookup: str
    row_lookup: str
    data_lookup: str

    def to_rules(self) -> ProxyParsingRules:
        return ProxyParsingRules(**self.model_dump())


class PositionSchema(BaseModel):
    """Previously scraped listing, stored without its shop."""

    full_name: str
    price: float
    url: str

    def to_listing(self, shop: Shop) -> Listing:
        return Listing(shop=shop, full_name=self.full_name, price=self.price, url=self.url)


class FileStructure(BaseModel):
    """Top-level layout of the data file."""

    shops: List[ShopSchema] = Field(default_factory=list)
    shops_parsing_rules: Dict[str, ShopParsingRulesSchema] = Field(default_factory=dict)
    proxy_parsing_rules: Dict[str, ProxyParsingRulesSchema] = Field(default_factory=dict)
    positions: Dict[str, List[PositionSchema]] = Field(default_factory=dict)
