"""Retry policy for whole-shop crawl attempts."""

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)
import structlog

from pricewatch.core.exceptions import CrawlerError


logger = structlog.get_logger(__name__)


def _log_failed_attempt(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "crawl_attempt_failed",
        attempt=retry_state.attempt_number,
        error_type=type(error).__name__,
        error=str(error),
    )


def crawl_retrying(attempts: int = 3, wait_seconds: float = 0.0) -> AsyncRetrying:
    """Build the retry controller wrapping one shop crawl.

    Every crawler error (no proxy, transport, selector, crashed task) consumes
    an attempt. Other exceptions propagate immediately. Once attempts run out
    tenacity raises ``RetryError`` holding the last attempt.

    Args:
        attempts: Total number of attempts, the first one included
        wait_seconds: Pause between attempts

    Returns:
        AsyncRetrying to drive with ``async for attempt in ...``
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(wait_seconds),
        retry=retry_if_exception_type(CrawlerError),
        before_sleep=_log_failed_attempt,
        reraise=False,
    )
