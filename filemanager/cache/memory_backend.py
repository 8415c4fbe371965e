"""
进程内缓存（Redis 不可用时的回退实现）
"""
import fnmatch
import logging
import math
import time
from typing import Dict, List, Optional, Tuple

from filemanager.cache.base import CacheBackend, CacheMode

logger = logging.getLogger(__name__)


class MemoryCache(CacheBackend):
    """字典存储，过期时间在读取时检查"""

    mode = CacheMode.LOCAL_FALLBACK

    def __init__(self):
        # key -> (value, 过期时刻 或 None)
        self._store: Dict[str, Tuple[str, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[Tuple[str, Optional[float]]]:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and expires_at <= time.monotonic():
            del self._store[key]
            return None
        return entry

    async def get(self, key: str) -> Optional[str]:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        expires_at = time.monotonic() + ttl if ttl and ttl > 0 else None
        self._store[key] = (value, expires_at)
        return True

    async def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        matched = [k for k in list(self._store) if fnmatch.fnmatchcase(k, pattern)]
        for key in matched:
            del self._store[key]
        if matched:
            logger.debug("内存缓存按模式删除 %s: %d 个键", pattern, len(matched))
        return len(matched)

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def flush(self) -> bool:
        self._store.clear()
        return True

    async def keys(self, pattern: str = "*") -> List[str]:
        return [k for k in list(self._store) if fnmatch.fnmatchcase(k, pattern) and self._live(k)]

    async def ttl(self, key: str) -> int:
        entry = self._live(key)
        if entry is None:
            return -2
        if entry[1] is None:
            return -1
        return max(0, math.ceil(entry[1] - time.monotonic()))

    def is_connected(self) -> bool:
        return True
