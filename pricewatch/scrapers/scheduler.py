"""APScheduler-based crawl scheduler.

Runs one crawl cycle every ``PARSING_DELAY_SECONDS``. Each cycle takes the
next shop from the rotation, so shops are crawled in turn.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pricewatch.core.exceptions import ShopNotFoundError
from pricewatch.scrapers.scraper_service import ScraperService

logger = structlog.get_logger(__name__)

CRAWL_JOB_ID = "crawl_cycle"


class ScraperScheduler:
    """Manages the periodic crawl job.

    This scheduler:
    - Starts and stops the background crawl job
    - Never runs two cycles at once
    - Logs cycle failures without stopping the schedule
    """

    def __init__(self, service: ScraperService, interval_seconds: int = 300):
        """Initialize scraper scheduler.

        Args:
            service: Service running one crawl cycle
            interval_seconds: Delay between cycle starts
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.service = service
        self.interval_seconds = interval_seconds
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="scraper_scheduler")
        self._job: Optional[Job] = None

    def start(self) -> None:
        """Start the scheduler and register the crawl job.

        Needs a running event loop. The first cycle fires right away.
        """
        if self.scheduler.running:
            self.logger.warning("scheduler_already_running")
            return

        self._job = self.scheduler.add_job(
            func=self._run_cycle_wrapper,
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone="UTC"),
            id=CRAWL_JOB_ID,
            name="Crawl next shop",
            replace_existing=True,
            max_instances=1,  # A slow crawl must not overlap the next one
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self.scheduler.start()
        self.logger.info("scheduler_started", interval_seconds=self.interval_seconds)

    def stop(self) -> None:
        """Stop the scheduler without waiting for a running cycle."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    async def _run_cycle_wrapper(self) -> None:
        """Run one cycle; this is what APScheduler calls.

        Catches all exceptions so that a failing cycle never unschedules
        the job.
        """
        try:
            await self.service.run_once()
        except ShopNotFoundError:
            self.logger.warning("no_shop_queued")
        except Exception as e:
            self.logger.error("crawl_job_failed", error=str(e), exc_info=True)

    def get_job_status(self) -> dict:
        """Get status of the crawl job.

        Returns:
            Dict with the job id, next run time and trigger, empty if unscheduled
        """
        job = self.scheduler.get_job(CRAWL_JOB_ID) if self._job else None
        if job is None:
            return {}
        return {
            "job_id": job.id,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger),
        }

    def is_running(self) -> bool:
        return self.scheduler.running
