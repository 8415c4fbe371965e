"""
文件夹Schema模型
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from filemanager.schemas.file import FileResponse
from filemanager.schemas.share import AccessLevel


class FolderResponse(BaseModel):
    """文件夹响应模型"""
    id: str
    name: str
    parentId: Optional[str] = None
    ownerId: str
    isPublic: bool = False
    createdAt: datetime
    updatedAt: datetime

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, folder, **extra) -> "FolderResponse":
        return cls(
            id=folder.id,
            name=folder.name,
            parentId=folder.parent_id,
            ownerId=folder.owner_id,
            isPublic=folder.is_public,
            createdAt=folder.created_at,
            updatedAt=folder.updated_at,
            **extra
        )


class FolderTreeNode(FolderResponse):
    """文件夹树节点模型（支持递归）"""
    files: List[FileResponse] = []
    subfolders: List["FolderTreeNode"] = []


class SharedFolderResponse(FolderResponse):
    """共享给我的文件夹"""
    accessLevel: AccessLevel
    sharedByUserId: str
    sharedAt: datetime


# 启用前向引用
FolderTreeNode.model_rebuild()
