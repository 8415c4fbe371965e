"""
按实体类型和用户作用域缓存查询结果
"""
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from filemanager.cache.base import CacheBackend
from filemanager.cache.strategy import CacheStrategy

logger = logging.getLogger(__name__)


class ResponseCache:
    """
    查询结果缓存

    值以 JSON 字符串存储；读写失败等同于未命中，不影响业务流程
    """

    def __init__(self, backend: CacheBackend, strategy: CacheStrategy):
        self.backend = backend
        self.strategy = strategy
        self.hits = 0
        self.misses = 0

    async def get(self, entity: str, identifier: str, user_id: Optional[str] = None) -> Optional[Any]:
        if not self.strategy.should_cache(entity):
            return None
        key = self.strategy.get_cache_key(entity, identifier, user_id)
        raw = await self.backend.get(key)
        if raw is None:
            self.misses += 1
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning("缓存值无法解析，丢弃: %s", key)
            await self.backend.delete(key)
            self.misses += 1
            return None
        self.hits += 1
        return value

    async def set(self, entity: str, identifier: str, value: Any, user_id: Optional[str] = None) -> bool:
        if not self.strategy.should_cache(entity):
            return False
        key = self.strategy.get_cache_key(entity, identifier, user_id)
        try:
            raw = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning("缓存值无法序列化: %s (%s)", key, e)
            return False
        return await self.backend.set(key, raw, self.strategy.get_ttl(entity))

    async def get_model(
        self,
        entity: str,
        identifier: str,
        schema: Type[BaseModel],
        user_id: Optional[str] = None
    ) -> Optional[BaseModel]:
        value = await self.get(entity, identifier, user_id)
        if value is None:
            return None
        try:
            return schema.model_validate(value)
        except PydanticValidationError:
            await self._discard(entity, identifier, user_id)
            return None

    async def set_model(self, entity: str, identifier: str, item: BaseModel, user_id: Optional[str] = None) -> bool:
        return await self.set(entity, identifier, item.model_dump(mode="json"), user_id)

    async def get_models(
        self,
        entity: str,
        identifier: str,
        schema: Type[BaseModel],
        user_id: Optional[str] = None
    ) -> Optional[List[BaseModel]]:
        value = await self.get(entity, identifier, user_id)
        if value is None:
            return None
        try:
            return [schema.model_validate(item) for item in value]
        except (PydanticValidationError, TypeError):
            await self._discard(entity, identifier, user_id)
            return None

    async def set_models(
        self,
        entity: str,
        identifier: str,
        items: List[BaseModel],
        user_id: Optional[str] = None
    ) -> bool:
        return await self.set(entity, identifier, [item.model_dump(mode="json") for item in items], user_id)

    async def _discard(self, entity: str, identifier: str, user_id: Optional[str]) -> None:
        key = self.strategy.get_cache_key(entity, identifier, user_id)
        logger.warning("缓存值与模型不匹配，丢弃: %s", key)
        await self.backend.delete(key)

    async def invalidate(
        self,
        entities: Iterable[str],
        user_ids: Iterable[Optional[str]] = (),
        everyone: bool = False
    ) -> int:
        """
        删除实体类型在公共作用域、指定用户作用域（everyone 时为所有用户）下的缓存

        返回删除的键数量，仅供参考
        """
        entities = list(entities)
        scopes = {None}
        scopes.update(u for u in user_ids if u)
        removed = 0
        for entity in entities:
            patterns = {self.strategy.get_pattern_key(entity, user_id) for user_id in scopes}
            if everyone:
                patterns.add(self.strategy.get_pattern_key(entity, "*"))
            for pattern in sorted(patterns):
                removed += await self.backend.delete_pattern(pattern)
        logger.debug("缓存失效: entities=%s users=%s everyone=%s removed=%d",
                     entities, sorted(u for u in scopes if u), everyone, removed)
        return removed

    async def stats(self) -> Dict[str, Any]:
        keys = await self.backend.keys(f"{self.strategy.prefix}:*")
        return {
            "mode": self.backend.mode.value,
            "connected": self.backend.is_connected(),
            "keys": len(keys),
            "hits": self.hits,
            "misses": self.misses,
        }

    async def close(self) -> None:
        await self.backend.close()
