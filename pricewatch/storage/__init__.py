"""Storage backends for shops, parsing rules and scraped listings."""

from .base import Storage
from .in_memory import InMemoryStorage
from .relational import RelationalStorage

__all__ = [
    "Storage",
    "InMemoryStorage",
    "RelationalStorage",
]
