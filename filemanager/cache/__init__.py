from .base import CacheBackend, CacheMode
from .memory_backend import MemoryCache
from .redis_backend import RedisCache, create_redis_client
from .strategy import CacheStrategy, build_cache_id, ENTITY_TTL, DEFAULT_TTL
from .factory import create_cache_backend
from .response_cache import ResponseCache

__all__ = [
    "CacheBackend",
    "CacheMode",
    "MemoryCache",
    "RedisCache",
    "create_redis_client",
    "CacheStrategy",
    "build_cache_id",
    "ENTITY_TTL",
    "DEFAULT_TTL",
    "create_cache_backend",
    "ResponseCache"
]
