"""
Redis 缓存后端
"""
import logging
from typing import List, Optional

from redis import asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from filemanager.cache.base import CacheBackend, CacheMode
from filemanager.core.config import Settings

logger = logging.getLogger(__name__)

CACHE_ERRORS = (RedisError, OSError)


def create_redis_client(settings: Settings) -> aioredis.Redis:
    return aioredis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD or None,
        db=settings.REDIS_DB,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
        decode_responses=True,
    )


class RedisCache(CacheBackend):
    """
    基于 redis.asyncio 的缓存

    client 需使用 decode_responses=True；测试中可注入 fakeredis 客户端
    """

    mode = CacheMode.DISTRIBUTED

    def __init__(self, client: aioredis.Redis):
        self.client = client
        self._connected = False

    async def connect(self) -> bool:
        """PING 探测连接"""
        try:
            await self.client.ping()
        except CACHE_ERRORS as e:
            logger.warning("Redis 连接失败: %s", e)
            self._connected = False
            return False
        self._connected = True
        logger.info("Redis 连接成功")
        return True

    def _failed(self, operation: str, key: str, error: Exception) -> None:
        if isinstance(error, (RedisConnectionError, OSError)):
            self._connected = False
        logger.error("Redis %s 失败: key=%s error=%s", operation, key, error)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except CACHE_ERRORS as e:
            self._failed("get", key, e)
            return None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        try:
            if ttl and ttl > 0:
                await self.client.set(key, value, ex=ttl)
            else:
                await self.client.set(key, value)
            return True
        except CACHE_ERRORS as e:
            self._failed("set", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return await self.client.delete(key) > 0
        except CACHE_ERRORS as e:
            self._failed("delete", key, e)
            return False

    async def delete_pattern(self, pattern: str) -> int:
        # SCAN 分批遍历，避免 KEYS 阻塞服务端
        try:
            keys = [key async for key in self.client.scan_iter(match=pattern, count=500)]
            if not keys:
                return 0
            return await self.client.delete(*keys)
        except CACHE_ERRORS as e:
            self._failed("delete_pattern", pattern, e)
            return 0

    async def exists(self, key: str) -> bool:
        try:
            return await self.client.exists(key) > 0
        except CACHE_ERRORS as e:
            self._failed("exists", key, e)
            return False

    async def flush(self) -> bool:
        try:
            await self.client.flushdb()
            return True
        except CACHE_ERRORS as e:
            self._failed("flush", "*", e)
            return False

    async def keys(self, pattern: str = "*") -> List[str]:
        try:
            return [key async for key in self.client.scan_iter(match=pattern, count=500)]
        except CACHE_ERRORS as e:
            self._failed("keys", pattern, e)
            return []

    async def ttl(self, key: str) -> int:
        try:
            return await self.client.ttl(key)
        except CACHE_ERRORS as e:
            self._failed("ttl", key, e)
            return -2

    def is_connected(self) -> bool:
        return self._connected

    async def close(self) -> None:
        try:
            await self.client.aclose()
        except CACHE_ERRORS as e:
            logger.warning("关闭 Redis 连接失败: %s", e)
        self._connected = False
