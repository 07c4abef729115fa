"""Custom exception classes for the crawler."""

from typing import Optional


class PriceWatchException(Exception):
    """Base exception for all pricewatch errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(PriceWatchException):
    """Raised when settings cannot be turned into a working setup."""


class NotFoundError(PriceWatchException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ShopNotFoundError(NotFoundError):
    """Raised when no shop is queued for crawling."""

    def __init__(self, identifier: str = "next"):
        super().__init__("Shop", identifier)


class ParsingRulesNotFoundError(NotFoundError):
    """Raised when a shop has no parsing rules configured."""

    def __init__(self, shop_name: str):
        super().__init__("ShopParsingRules", shop_name)


class NotAProxyRow(PriceWatchException, ValueError):
    """Raised when a proxy-list row lacks an IP, port or https flag."""

    def __init__(self, missing: str):
        self.missing = missing
        super().__init__(f"Not a proxy row: missing {missing}")


class WorkerPoolSaturated(PriceWatchException):
    """Raised when the worker pool has no free slot for another unit of work."""

    def __init__(self, pending: int, limit: int):
        self.pending = pending
        self.limit = limit
        super().__init__(f"Worker pool saturated: {pending}/{limit} units in flight")


class CrawlerError(PriceWatchException):
    """Base class for failures that consume one crawl attempt."""


class NoProxyAvailable(CrawlerError):
    """Raised when no healthy proxy could be found.

    Also the terminal error of a shop crawl once every attempt failed; in that
    case ``attempts`` and ``last_cause`` describe the final failed attempt.
    """

    def __init__(
        self,
        message: str = "No proxy available",
        attempts: Optional[int] = None,
        last_cause: Optional[BaseException] = None,
    ):
        self.attempts = attempts
        self.last_cause = last_cause
        super().__init__(message)

    @classmethod
    def after_attempts(cls, attempts: int, last_cause: Optional[BaseException]) -> "NoProxyAvailable":
        return cls(
            f"{attempts} attempts failed, last cause: {last_cause!r}",
            attempts=attempts,
            last_cause=last_cause,
        )


class SelectorError(CrawlerError):
    """Raised when a CSS selector is syntactically invalid."""

    def __init__(self, selector: str, message: Optional[str] = None):
        self.selector = selector
        super().__init__(message or f"Invalid selector: {selector!r}")


class ElementNotFound(SelectorError):
    """Raised when a selector matches nothing where one element is required."""

    def __init__(self, selector: str, attribute: Optional[str] = None):
        self.attribute = attribute
        if attribute:
            message = f"No element for selector {selector!r} with attribute {attribute!r}"
        else:
            message = f"No element for selector {selector!r}"
        super().__init__(selector, message)


class ProxyTableNotFound(SelectorError):
    """Raised when a proxy-list page has no element matching the table lookup."""

    def __init__(self, selector: str, source: str):
        self.source = source
        super().__init__(selector, f"No proxy table {selector!r} on {source}")


class TransportError(CrawlerError):
    """Raised when an HTTP request cannot be sent or answered."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Request to {url} failed: {message}")


class ClientBuildError(TransportError):
    """Raised when an HTTP client cannot be configured for a proxy."""

    def __init__(self, proxy: str, message: str):
        self.url = proxy
        PriceWatchException.__init__(self, f"Failed to build client for proxy {proxy}: {message}")


class TaskError(CrawlerError):
    """Raised when a unit of work crashes inside the worker pool."""

    def __init__(self, task: str, error: BaseException):
        self.task = task
        self.error = error
        super().__init__(f"Task {task} crashed: {error!r}")
