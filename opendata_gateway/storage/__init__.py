"""Storage modules for the open-data gateway."""

from opendata_gateway.storage.cache import CacheEntry, TieredCache
from opendata_gateway.storage.snapshot import CacheSnapshot

__all__ = [
    "CacheEntry",
    "TieredCache",
    "CacheSnapshot",
]
