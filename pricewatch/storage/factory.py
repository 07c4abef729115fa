"""Storage backend selection from settings."""

import structlog

from pricewatch.config import Settings
from pricewatch.core.exceptions import ConfigurationError
from pricewatch.storage.base import Storage
from pricewatch.storage.in_memory import InMemoryStorage
from pricewatch.storage.relational import RelationalStorage
from pricewatch.storage.session import create_engine, create_tables

logger = structlog.get_logger(__name__)


async def create_storage(settings: Settings) -> Storage:
    """Build the storage backend named by ``STORAGE_BACKEND``.

    The relational backend creates its tables on first use.

    Raises:
        ConfigurationError: If the backend is unknown or its data is invalid
    """
    backend = settings.STORAGE_BACKEND
    if backend == "memory":
        storage: Storage = InMemoryStorage.from_file(settings.DATA_FILE)
    elif backend == "relational":
        engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        await create_tables(engine)
        storage = RelationalStorage.from_engine(engine)
    else:
        raise ConfigurationError(f"Unknown storage backend: {backend!r}")

    logger.info("storage_created", backend=backend)
    return storage
