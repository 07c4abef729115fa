"""SQL-backed storage using the SQLAlchemy async ORM."""

from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from pricewatch.core.exceptions import ParsingRulesNotFoundError, ShopNotFoundError
from pricewatch.scrapers.base import Listing, ProxyParsingRules, Shop, ShopParsingRules
from pricewatch.storage.base import Storage
from pricewatch.storage.models import (
    ParsingCategoryRecord,
    ProxySourceRecord,
    ShopParsingRulesRecord,
    ShopPositionRecord,
    ShopRecord,
)
from pricewatch.storage.session import create_session_factory

logger = structlog.get_logger(__name__)


def _to_shop(record: ShopRecord) -> Shop:
    return Shop(name=record.name, url=record.url, logo=record.logo, id=record.id)


class RelationalStorage(Storage):
    """Storage over the ``shops`` / ``shop_parsing_rules`` / ... tables.

    Shops rotate by ``last_parsed``: the next shop is the one crawled longest
    ago (never-crawled shops first), and taking it stamps it. Saved listings
    are appended as history, never overwritten.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: Optional[AsyncEngine] = None,
    ):
        """Initialize relational storage.

        Args:
            session_factory: Async session factory bound to the database
            engine: Engine to dispose on ``close()``, if owned by this storage
        """
        self.session_factory = session_factory
        self.engine = engine
        self.logger = logger.bind(service="relational_storage")

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "RelationalStorage":
        return cls(create_session_factory(engine), engine=engine)

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()

    async def _get_shop_record(self, db: AsyncSession, shop: Shop) -> Optional[ShopRecord]:
        if shop.id is not None:
            return await db.get(ShopRecord, shop.id)
        result = await db.execute(select(ShopRecord).where(ShopRecord.name == shop.name))
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Storage interface
    # ------------------------------------------------------------------

    async def get_next_shop(self) -> Shop:
        async with self.session_factory() as db:
            result = await db.execute(
                select(ShopRecord)
                .order_by(
                    ShopRecord.last_parsed.is_(None).desc(),
                    ShopRecord.last_parsed.asc(),
                    ShopRecord.id.asc(),
                )
                .limit(1)
            )
            record = result.scalar_one_or_none()
            if record is None:
                raise ShopNotFoundError()

            record.last_parsed = datetime.now(timezone.utc)
            await db.commit()
            return _to_shop(record)

    async def get_parsing_rules(self, shop: Shop) -> ShopParsingRules:
        async with self.session_factory() as db:
            record = await self._get_shop_record(db, shop)
            if record is None:
                raise ShopNotFoundError(shop.name)

            result = await db.execute(
                select(ShopParsingRulesRecord).where(ShopParsingRulesRecord.shop_id == record.id)
            )
            rules = result.scalar_one_or_none()
            if rules is None:
                raise ParsingRulesNotFoundError(shop.name)

            result = await db.execute(
                select(ParsingCategoryRecord.category)
                .where(ParsingCategoryRecord.shop_id == record.id)
                .order_by(ParsingCategoryRecord.sort_order, ParsingCategoryRecord.id)
            )
            categories = list(result.scalars().all())

        return ShopParsingRules(
            parsing_url=rules.parsing_url,
            max_page_lookup=rules.max_page_lookup,
            product_table_lookup=rules.product_table_lookup,
            product_lookup=rules.product_lookup,
            name_lookup=rules.name_lookup,
            price_lookup=rules.price_lookup,
            url_lookup=rules.url_lookup,
            url_categories=categories,
            look_for_href=rules.look_for_href,
            sleep_timeout_sec=rules.sleep_timeout_sec,
        )

    async def get_proxy_source_rules(self) -> Dict[str, ProxyParsingRules]:
        async with self.session_factory() as db:
            result = await db.execute(select(ProxySourceRecord).order_by(ProxySourceRecord.id))
            return {
                record.source: ProxyParsingRules(
                    table_lookup=record.table_lookup,
                    head_lookup=record.head_lookup,
                    row_lookup=record.row_lookup,
                    data_lookup=record.data_lookup,
                )
                for record in result.scalars().all()
            }

    async def save_listings(self, shop: Shop, listings: List[Listing]) -> None:
        async with self.session_factory() as db:
            record = await self._get_shop_record(db, shop)
            if record is None:
                raise ShopNotFoundError(shop.name)

            result = await db.execute(
                select(func.max(ShopPositionRecord.crawl_id)).where(
                    ShopPositionRecord.shop_id == record.id
                )
            )
            crawl_id = (result.scalar() or 0) + 1

            db.add_all(
                ShopPositionRecord(
                    shop_id=record.id,
                    full_name=listing.full_name,
                    price=listing.price,
                    url=listing.url,
                    crawl_id=crawl_id,
                )
                for listing in listings
            )
            await db.commit()

        self.logger.info("listings_saved", shop=shop.name, count=len(listings), crawl_id=crawl_id)

    async def requeue_shop(self, shop: Shop) -> None:
        async with self.session_factory() as db:
            record = await self._get_shop_record(db, shop)
            if record is None:
                raise ShopNotFoundError(shop.name)
            record.last_parsed = datetime.now(timezone.utc)
            await db.commit()

    async def get_listings(self, shop: Shop) -> List[Listing]:
        async with self.session_factory() as db:
            record = await self._get_shop_record(db, shop)
            if record is None:
                return []

            latest = (
                select(func.max(ShopPositionRecord.crawl_id))
                .where(ShopPositionRecord.shop_id == record.id)
                .scalar_subquery()
            )
            result = await db.execute(
                select(ShopPositionRecord)
                .where(
                    ShopPositionRecord.shop_id == record.id,
                    ShopPositionRecord.crawl_id == latest,
                )
                .order_by(ShopPositionRecord.id)
            )
            owner = _to_shop(record)
            return [
                Listing(shop=owner, full_name=row.full_name, price=row.price, url=row.url)
                for row in result.scalars().all()
            ]

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    async def add_shop(self, shop: Shop, rules: Optional[ShopParsingRules] = None) -> Shop:
        """Insert or update a shop together with its parsing rules.

        Returns:
            The shop with its database id
        """
        async with self.session_factory() as db:
            result = await db.execute(
                select(ShopRecord)
                .where(ShopRecord.name == shop.name)
                .options(selectinload(ShopRecord.parsing_rules), selectinload(ShopRecord.categories))
            )
            record = result.scalar_one_or_none()
            if record is None:
                record = ShopRecord(name=shop.name)
                db.add(record)
            record.url = shop.url
            record.logo = shop.logo

            if rules is not None:
                stored = record.parsing_rules
                if stored is None:
                    stored = ShopParsingRulesRecord()
                    record.parsing_rules = stored
                stored.parsing_url = rules.parsing_url
                stored.max_page_lookup = rules.max_page_lookup
                stored.product_table_lookup = rules.product_table_lookup
                stored.product_lookup = rules.product_lookup
                stored.name_lookup = rules.name_lookup
                stored.price_lookup = rules.price_lookup
                stored.url_lookup = rules.url_lookup
                stored.look_for_href = rules.look_for_href
                stored.sleep_timeout_sec = rules.sleep_timeout_sec
                record.categories = [
                    ParsingCategoryRecord(category=category, sort_order=idx)
                    for idx, category in enumerate(rules.url_categories)
                ]

            await db.commit()
            self.logger.info("shop_seeded", shop=shop.name, shop_id=record.id)
            return _to_shop(record)

    async def add_proxy_source(self, source: str, rules: ProxyParsingRules) -> None:
        """Insert or update the rules of a proxy-list source."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(ProxySourceRecord).where(ProxySourceRecord.source == source)
            )
            record = result.scalar_one_or_none()
            if record is None:
                record = ProxySourceRecord(source=source)
                db.add(record)
            record.table_lookup = rules.table_lookup
            record.head_lookup = rules.head_lookup
            record.row_lookup = rules.row_lookup
            record.data_lookup = rules.data_lookup
            await db.commit()
