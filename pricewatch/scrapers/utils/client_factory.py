"""HTTP client construction, optionally routed through a proxy."""

from typing import Optional

import httpx
import structlog

from pricewatch.core.exceptions import ClientBuildError
from pricewatch.scrapers.base import Proxy
from pricewatch.scrapers.utils.user_agents import DEFAULT_USER_AGENT, resolve_user_agent

logger = structlog.get_logger(__name__)


class ClientFactory:
    """Builds httpx clients with the crawler's fixed request profile.

    Every client follows up to ``max_redirects`` redirects, sends the same
    desktop-browser User-Agent and, when a proxy is given, sends all of its
    traffic through ``scheme://ip:port``.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        max_redirects: int = 30,
        timeout: float = 30.0,
    ):
        """Initialize client factory.

        Args:
            user_agent: User-Agent header value, or a browser alias
            max_redirects: Redirect hops followed before giving up
            timeout: Default request timeout in seconds
        """
        self.user_agent = resolve_user_agent(user_agent)
        self.max_redirects = max_redirects
        self.timeout = timeout

    def _client_kwargs(self, proxy: Optional[Proxy], timeout: Optional[float]) -> dict:
        kwargs = {
            "follow_redirects": True,
            "max_redirects": self.max_redirects,
            "headers": {"User-Agent": self.user_agent},
            "timeout": self.timeout if timeout is None else timeout,
        }
        if proxy is not None:
            kwargs["proxy"] = str(proxy)
        return kwargs

    def build(self, proxy: Optional[Proxy] = None, timeout: Optional[float] = None) -> httpx.Client:
        """Build a blocking client for the crawl workers.

        Args:
            proxy: Proxy to route through, or None for a direct client
            timeout: Override for the default timeout

        Returns:
            Configured httpx.Client (caller closes it)

        Raises:
            ClientBuildError: If the proxy URL or transport cannot be set up
        """
        try:
            return httpx.Client(**self._client_kwargs(proxy, timeout))
        except (ValueError, TypeError, httpx.HTTPError, httpx.InvalidURL) as e:
            route = str(proxy) if proxy else "direct"
            logger.warning("client_build_failed", proxy=route, error=str(e))
            raise ClientBuildError(route, str(e)) from e

    def build_async(
        self, proxy: Optional[Proxy] = None, timeout: Optional[float] = None
    ) -> httpx.AsyncClient:
        """Build an async client, used for proxy health checks.

        Raises:
            ClientBuildError: If the proxy URL or transport cannot be set up
        """
        try:
            return httpx.AsyncClient(**self._client_kwargs(proxy, timeout))
        except (ValueError, TypeError, httpx.HTTPError, httpx.InvalidURL) as e:
            route = str(proxy) if proxy else "direct"
            logger.warning("client_build_failed", proxy=route, error=str(e))
            raise ClientBuildError(route, str(e)) from e
