"""SQLAlchemy models for the relational storage backend."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Declarative base for all pricewatch tables."""


class ShopRecord(Base):
    """Crawled storefront and its place in the crawl rotation."""

    __tablename__ = "shops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    logo: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    # Rotation: the oldest (or missing) stamp is crawled next
    last_parsed: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the shop was last taken for crawling",
    )

    # Relationships
    parsing_rules: Mapped[Optional["ShopParsingRulesRecord"]] = relationship(
        back_populates="shop", cascade="all, delete-orphan", uselist=False
    )
    categories: Mapped[List["ParsingCategoryRecord"]] = relationship(
        back_populates="shop",
        cascade="all, delete-orphan",
        order_by="ParsingCategoryRecord.sort_order",
    )
    positions: Mapped[List["ShopPositionRecord"]] = relationship(
        back_populates="shop", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<ShopRecord(id={self.id}, name='{self.name}', last_parsed={self.last_parsed})>"


class ShopParsingRulesRecord(Base):
    """Selectors and URL template of one shop."""

    __tablename__ = "shop_parsing_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shop_id: Mapped[int] = mapped_column(
        ForeignKey("shops.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    parsing_url: Mapped[str] = mapped_column(Text, nullable=False)
    max_page_lookup: Mapped[str] = mapped_column(Text, nullable=False)
    product_table_lookup: Mapped[str] = mapped_column(Text, nullable=False)
    product_lookup: Mapped[str] = mapped_column(Text, nullable=False)
    name_lookup: Mapped[str] = mapped_column(Text, nullable=False)
    price_lookup: Mapped[str] = mapped_column(Text, nullable=False)
    url_lookup: Mapped[str] = mapped_column(Text, nullable=False)
    look_for_href: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sleep_timeout_sec: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    shop: Mapped["ShopRecord"] = relationship(back_populates="parsing_rules")


class ParsingCategoryRecord(Base):
    """One category id substituted into a shop's URL template."""

    __tablename__ = "parsing_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shop_id: Mapped[int] = mapped_column(
        ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(200), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    shop: Mapped["ShopRecord"] = relationship(back_populates="categories")


class ProxySourceRecord(Base):
    """Public proxy-list page and the selectors for its table."""

    __tablename__ = "proxy_sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    table_lookup: Mapped[str] = mapped_column(Text, nullable=False)
    head_lookup: Mapped[str] = mapped_column(Text, nullable=False)
    row_lookup: Mapped[str] = mapped_column(Text, nullable=False)
    data_lookup: Mapped[str] = mapped_column(Text, nullable=False)


class ShopPositionRecord(Base):
    """Price history: one row per listing per crawl."""

    __tablename__ = "shop_positions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shop_id: Mapped[int] = mapped_column(
        ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    full_name: Mapped[str] = mapped_column(String(500), nullable=False)
    price: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    crawl_id: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Increments per save, groups one crawl's rows"
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_shop_positions_shop_crawl", "shop_id", "crawl_id"),
    )

    shop: Mapped["ShopRecord"] = relationship(back_populates="positions")

    def __repr__(self) -> str:
        return f"<ShopPositionRecord(id={self.id}, shop_id={self.shop_id}, price={self.price})>"
