"""
缓存后端选择
"""
import logging

from filemanager.cache.base import CacheBackend
from filemanager.cache.memory_backend import MemoryCache
from filemanager.cache.redis_backend import RedisCache, create_redis_client
from filemanager.core.config import Settings

logger = logging.getLogger(__name__)


async def create_cache_backend(settings: Settings) -> CacheBackend:
    """
    启动时用 PING 探测一次 Redis；不可用或未启用时使用进程内缓存，
    选定的后端在进程生命周期内不再切换
    """
    if not settings.REDIS_ENABLED:
        logger.info("Redis 未启用，使用内存缓存")
        return MemoryCache()

    backend = RedisCache(create_redis_client(settings))
    if await backend.connect():
        logger.info("缓存模式: 分布式 (%s:%s)", settings.REDIS_HOST, settings.REDIS_PORT)
        return backend

    await backend.close()
    logger.warning(
        "Redis 不可用 (%s:%s)，回退到内存缓存",
        settings.REDIS_HOST, settings.REDIS_PORT,
    )
    return MemoryCache()
