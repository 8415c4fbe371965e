"""
文件Schema模型
"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from filemanager.schemas.share import AccessLevel


class AccessType(str, Enum):
    """文件可见性"""
    PRIVATE = "private"
    SHARED = "shared"
    PUBLIC = "public"


class UploadMetadata(BaseModel):
    """上传文件元数据"""
    originalName: str = Field(..., description="原始文件名")
    mimeType: Optional[str] = Field(None, description="MIME类型，为空时根据文件名推断")


class FileResponse(BaseModel):
    """文件响应模型"""
    id: str
    filename: str
    originalName: str
    filePath: str
    thumbnailPath: Optional[str] = None
    fileSize: int
    mimeType: str
    folderId: Optional[str] = None
    ownerId: str
    accessType: AccessType
    createdAt: datetime
    updatedAt: datetime

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, file, **extra) -> "FileResponse":
        return cls(
            id=file.id,
            filename=file.filename,
            originalName=file.original_name,
            filePath=file.file_path,
            thumbnailPath=file.thumbnail_path,
            fileSize=file.file_size,
            mimeType=file.mime_type,
            folderId=file.folder_id,
            ownerId=file.owner_id,
            accessType=file.access_type,
            createdAt=file.created_at,
            updatedAt=file.updated_at,
            **extra
        )


class SharedFileResponse(FileResponse):
    """共享给我的文件"""
    accessLevel: AccessLevel
    sharedByUserId: str
    sharedAt: datetime


class DownloadInfo(BaseModel):
    """下载信息（由调用方负责流式输出）"""
    filePath: str
    fileName: str
    mimeType: str


class MoveResult(BaseModel):
    """批量移动结果，只统计成功移动的文件"""
    moved: int = 0
