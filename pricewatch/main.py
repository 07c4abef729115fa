"""pricewatch -- crawler process entry point."""

import argparse
import asyncio
import json
import signal
from typing import List, Optional

import structlog

from pricewatch.config import Settings, get_settings
from pricewatch.core.exceptions import PriceWatchException
from pricewatch.core.logging import configure_logging
from pricewatch.scrapers.factory import create_crawler

logger = structlog.get_logger(__name__)


async def run_once(settings: Settings) -> int:
    """Crawl the next shop once and print the cycle statistics."""
    crawler = await create_crawler(settings)
    try:
        stats = await crawler.service.run_once()
    except PriceWatchException as e:
        logger.error("crawl_failed", error_type=type(e).__name__, error=str(e))
        return 1
    finally:
        await crawler.close()

    print(json.dumps(stats, indent=2))
    return 0


async def run_scheduled(settings: Settings) -> int:
    """Crawl shops in rotation until interrupted."""
    crawler = await create_crawler(settings)
    scheduler = crawler.scheduler()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still raises
            pass

    logger.info("pricewatch_starting", environment=settings.ENVIRONMENT)
    scheduler.start()
    try:
        await stop_event.wait()
    finally:
        scheduler.stop()
        await crawler.close()
        logger.info("pricewatch_stopped")
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pricewatch",
        description="Crawl shop listings through public proxies",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Crawl the next shop once, print the result and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL (e.g. DEBUG)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and run the crawler."""
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.LOG_LEVEL, json_logs=settings.LOG_JSON)

    try:
        if args.once:
            return asyncio.run(run_once(settings))
        return asyncio.run(run_scheduled(settings))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
