"""Manual crawler runner for testing and debugging parsing rules.

This script crawls one shop from the data file and prints the listings it
finds, without saving anything or touching the crawl rotation.

Usage:
    python scripts/run_crawler.py --shop "Example Shop"
    python scripts/run_crawler.py --shop "Example Shop" --data data/shops.json --limit 5
"""

import asyncio
import argparse

from pricewatch.config import get_settings
from pricewatch.core.exceptions import PriceWatchException
from pricewatch.core.logging import configure_logging
from pricewatch.scrapers.base import Shop
from pricewatch.scrapers.factory import create_crawler
from pricewatch.scrapers.utils.normalizer import PriceNormalizer
from pricewatch.storage.in_memory import InMemoryStorage


async def run_crawler(shop_name: str, data_file: str, limit: int = 10) -> int:
    """Crawl one shop and display the results.

    Args:
        shop_name: Shop name as listed in the data file
        data_file: Path of the JSON data file
        limit: Maximum number of listings to display (default: 10)
    """
    storage = InMemoryStorage.from_file(data_file)
    shop = next((s for s in storage.queued_shops if s.name == shop_name), None)
    if shop is None:
        print(f"\n❌ Error: Unknown shop '{shop_name}'")
        print(f"\n📋 Available shops:")
        for queued in storage.queued_shops:
            print(f"   - {queued.name}")
        return 1

    print(f"\n{'='*70}")
    print(f"  Crawling {shop.name}")
    print(f"{'='*70}")
    print(f"  📊 Display Limit: {limit}")
    print(f"{'='*70}\n")

    crawler = await create_crawler(get_settings(), storage=storage)
    try:
        rules = await storage.get_parsing_rules(shop)
        print(f"🔍 Crawling {len(rules.categories())} categories...\n")
        _, listings = await crawler.parser.parse(shop, rules)
    except PriceWatchException as e:
        print(f"\n❌ Error occurred while crawling:")
        print(f"   {type(e).__name__}: {e}")
        if e.__cause__ is not None:
            print(f"   caused by {type(e.__cause__).__name__}: {e.__cause__}")
        return 1
    finally:
        await crawler.close()

    if not listings:
        print("⚠️  No listings found.\n")
        return 0

    print(f"✅ Found {len(listings)} listings\n")
    for i, listing in enumerate(listings[:limit], 1):
        print(f"[{i}] {listing.full_name}")
        print(f"    💰 Price: {_format_price(listing.price)}")
        print(f"    🔗 URL: {listing.url[:80]}")
        print()

    unparsed = sum(1 for listing in listings if PriceNormalizer.is_sentinel(listing.price))
    print(f"{'='*70}")
    print(f"  Summary")
    print(f"{'='*70}")
    print(f"  Total Listings: {len(listings)}")
    print(f"  Displayed: {min(limit, len(listings))}")
    print(f"  Unparsed Prices: {unparsed}")
    print(f"{'='*70}\n")
    return 0


def _format_price(price: float) -> str:
    if PriceNormalizer.is_sentinel(price):
        return "unparsed"
    return f"{price:,.2f}"


def main():
    """Parse arguments and run the crawler."""
    parser = argparse.ArgumentParser(
        description="Crawl one shop and print its listings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_crawler.py --shop "Example Shop"
  python scripts/run_crawler.py --shop "Example Shop" --limit 5
        """,
    )
    parser.add_argument("--shop", required=True, help="Shop name from the data file")
    parser.add_argument(
        "--data",
        default=get_settings().DATA_FILE,
        help="JSON data file (default: DATA_FILE setting)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of listings to display (default: 10)",
    )
    args = parser.parse_args()

    configure_logging(get_settings().LOG_LEVEL)
    raise SystemExit(asyncio.run(run_crawler(args.shop, args.data, args.limit)))


if __name__ == "__main__":
    main()
