"""Seed the relational database from a JSON data file.

Copies shops, their parsing rules and the proxy-list sources into the
database at DATABASE_URL. Idempotent: existing shops and sources are
updated in place.

Usage:
    python scripts/seed_database.py
    python scripts/seed_database.py --data data/shops.json
"""

import asyncio
import argparse

from pricewatch.config import get_settings
from pricewatch.core.exceptions import ParsingRulesNotFoundError
from pricewatch.core.logging import configure_logging
from pricewatch.storage.in_memory import InMemoryStorage
from pricewatch.storage.relational import RelationalStorage
from pricewatch.storage.session import create_engine, create_tables


async def seed_database(data_file: str) -> None:
    """Copy the data file into the relational storage."""
    settings = get_settings()
    source = InMemoryStorage.from_file(data_file)

    print(f"\n{'='*60}")
    print(f"  Seeding Database")
    print(f"{'='*60}\n")

    engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    await create_tables(engine)
    storage = RelationalStorage.from_engine(engine)

    shop_count = 0
    try:
        for shop in source.queued_shops:
            try:
                rules = await source.get_parsing_rules(shop)
            except ParsingRulesNotFoundError:
                rules = None
            await storage.add_shop(shop, rules)
            marker = "✅" if rules else "⚠️ "
            print(f"  {marker} Shop: {shop.name}" + ("" if rules else " (no parsing rules)"))
            shop_count += 1

        sources = await source.get_proxy_source_rules()
        for url, rules in sources.items():
            await storage.add_proxy_source(url, rules)
            print(f"  ✅ Proxy source: {url}")
    finally:
        await storage.close()

    print(f"\n{'='*60}")
    print(f"  Seeding Complete")
    print(f"{'='*60}")
    print(f"  📊 Shops: {shop_count}")
    print(f"  📊 Proxy sources: {len(sources)}\n")


def main():
    parser = argparse.ArgumentParser(description="Seed the database from a JSON data file")
    parser.add_argument(
        "--data",
        default=get_settings().DATA_FILE,
        help="JSON data file (default: DATA_FILE setting)",
    )
    args = parser.parse_args()

    configure_logging("WARNING")
    asyncio.run(seed_database(args.data))


if __name__ == "__main__":
    main()
