"""Courtesy delay between page fetches of one shop."""

import random
import time
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class PageThrottle:
    """Sleeps between consecutive page fetches against the same shop.

    Each wait lasts the shop's configured timeout plus a random jitter in
    ``[0, max_jitter]`` so request spacing does not look machine-made.
    Shops without a timeout are not throttled at all.

    Runs inside the blocking crawl worker, so it sleeps synchronously.
    """

    def __init__(
        self,
        max_jitter: float = 1.0,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize page throttle.

        Args:
            max_jitter: Upper bound of the random extra delay in seconds
            rng: Random source for the jitter (seed it for reproducible runs)
            sleep: Blocking sleep function
        """
        if max_jitter < 0:
            raise ValueError("max_jitter must be non-negative")
        self.max_jitter = max_jitter
        self._rng = rng or random.Random()
        self._sleep = sleep

    def delay_for(self, timeout_sec: Optional[float]) -> float:
        """Compute the next delay, or 0.0 when throttling is off."""
        if timeout_sec is None:
            return 0.0
        jitter = self._rng.uniform(0.0, self.max_jitter) if self.max_jitter else 0.0
        return timeout_sec + jitter

    def wait(self, timeout_sec: Optional[float]) -> float:
        """Block for the shop's page delay.

        Args:
            timeout_sec: The shop's ``sleep_timeout_sec``; None skips the wait

        Returns:
            Seconds slept
        """
        delay = self.delay_for(timeout_sec)
        if delay > 0:
            logger.debug("page_throttle_wait", seconds=round(delay, 3))
            self._sleep(delay)
        return delay
