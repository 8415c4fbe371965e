"""
缓存后端接口
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional


class CacheMode(str, Enum):
    """缓存模式（进程启动时确定，运行期间不切换）"""
    DISTRIBUTED = "distributed"
    LOCAL_FALLBACK = "local_fallback"


class CacheBackend(ABC):
    """
    键值缓存后端

    实现不向调用方抛出异常：失败时记录日志并返回 None / False / 0，
    调用方把缓存失败当作未命中处理
    """

    mode: CacheMode

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """按 glob 模式删除，返回删除数量"""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    async def flush(self) -> bool:
        ...

    @abstractmethod
    async def keys(self, pattern: str = "*") -> List[str]:
        ...

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """剩余秒数；永不过期返回 -1，键不存在返回 -2"""

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    async def close(self) -> None:
        return None
