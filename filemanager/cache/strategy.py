"""
缓存键与过期策略
"""
import hashlib
import json
from typing import Any, Dict, Optional

DEFAULT_TTL = 3600

# 只有出现在此表中的实体类型才会被缓存（秒）
ENTITY_TTL: Dict[str, int] = {
    "user": 1800,
    "file": 3600,
    "folder": 3600,
    "files": 300,
    "folders": 300,
    "folders-tree": 300,
    "thumbnail": 86400,
}

PUBLIC_SCOPE = "public"


class CacheStrategy:
    """
    键格式: {prefix}:{entity}:{public|user:<id>}:{id-or-query}
    """

    def __init__(self, prefix: str = "mediahub:filemanager", ttl_table: Optional[Dict[str, int]] = None):
        self.prefix = prefix
        self.ttl_table = dict(ENTITY_TTL if ttl_table is None else ttl_table)

    @staticmethod
    def scope(user_id: Optional[str]) -> str:
        if user_id is None:
            return PUBLIC_SCOPE
        return f"user:{user_id}"

    def get_cache_key(self, entity: str, identifier: str, user_id: Optional[str] = None) -> str:
        return f"{self.prefix}:{entity}:{self.scope(user_id)}:{identifier}"

    def get_pattern_key(self, entity: str, user_id: Optional[str] = None) -> str:
        """
        实体在某个作用域下的全部键；user_id 为 "*" 时匹配所有用户作用域
        """
        if user_id == "*":
            return f"{self.prefix}:{entity}:user:*:*"
        return f"{self.prefix}:{entity}:{self.scope(user_id)}:*"

    def should_cache(self, entity: str) -> bool:
        return entity in self.ttl_table

    def get_ttl(self, entity: str) -> int:
        return self.ttl_table.get(entity, DEFAULT_TTL)


def build_cache_id(prefix: str, payload: Any) -> str:
    """对查询参数做稳定哈希（键排序后的 JSON 的 sha1）"""
    raw = json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))
    return f"{prefix}:{hashlib.sha1(raw.encode('utf-8')).hexdigest()}"
