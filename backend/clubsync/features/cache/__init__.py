"""
Cache module.

TTL store, namespaced cache service and the cached read path.
"""

from .store import TTLStore
from .service import CacheService, cache_service, event_cache_key
from .cached_storage import CachedStorage, FetchError

__all__ = [
    "TTLStore",
    "CacheService",
    "cache_service",
    "event_cache_key",
    "CachedStorage",
    "FetchError",
]
