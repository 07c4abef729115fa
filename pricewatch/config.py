"""Crawler configuration via Pydantic Settings."""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pricewatch.scrapers.utils.user_agents import DEFAULT_USER_AGENT


class Settings(BaseSettings):
    """Global crawler settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Storage
    STORAGE_BACKEND: Literal["memory", "relational"] = "memory"
    DATA_FILE: str = "data/shops.json"
    DATABASE_URL: str = "sqlite+aiosqlite:///./pricewatch.db"

    @model_validator(mode="after")
    def fix_database_url(self) -> "Settings":
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://"""
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            self.DATABASE_URL = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgres://"):
            self.DATABASE_URL = url.replace("postgres://", "postgresql+asyncpg://", 1)
        return self

    # Scheduling
    PARSING_DELAY_SECONDS: int = 300

    # Crawl policy
    CRAWL_ATTEMPTS: int = 3
    CRAWL_RETRY_WAIT_SECONDS: float = 0.0
    PAGE_JITTER_SECONDS: float = 1.0
    SKIP_FAILED_CATEGORIES: bool = False

    # Worker pool
    WORKER_COUNT: int = 4
    WORKER_MAX_PENDING: int = 8

    # HTTP
    USER_AGENT: str = DEFAULT_USER_AGENT
    MAX_REDIRECTS: int = 30
    REQUEST_TIMEOUT: float = 30.0

    # Proxy health checks
    PROXY_CHECK_URL: str = "http://www.google.com"
    PROXY_CHECK_TIMEOUT: float = 1.0


settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings
