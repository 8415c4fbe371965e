"""
共享Schema模型
"""
from enum import Enum
from pydantic import BaseModel
from datetime import datetime


class AccessLevel(str, Enum):
    """共享权限级别"""
    READ = "read"
    WRITE = "write"


class ShareResponse(BaseModel):
    """共享记录响应模型（文件与文件夹通用）"""
    id: str
    resourceId: str
    sharedWithUserId: str
    sharedByUserId: str
    accessLevel: AccessLevel
    createdAt: datetime

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, share, resource_id: str) -> "ShareResponse":
        return cls(
            id=share.id,
            resourceId=resource_id,
            sharedWithUserId=share.shared_with_user_id,
            sharedByUserId=share.shared_by_user_id,
            accessLevel=share.access_level,
            createdAt=share.created_at
        )
