"""Scraper utilities for rate limiting, HTTP clients, retries and price normalization."""

from .rate_limiter import PageThrottle
from .client_factory import ClientFactory
from .user_agents import (
    DEFAULT_USER_AGENT,
    USER_AGENTS,
    get_user_agent_by_browser,
    resolve_user_agent,
)
from .normalizer import PriceNormalizer
from .retry import crawl_retrying


__all__ = [
    # Rate limiting
    "PageThrottle",
    # HTTP clients
    "ClientFactory",
    # User agents
    "DEFAULT_USER_AGENT",
    "USER_AGENTS",
    "get_user_agent_by_browser",
    "resolve_user_agent",
    # Normalization
    "PriceNormalizer",
    # Retry policy
    "crawl_retrying",
]
