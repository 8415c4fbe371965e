"""
文件管理异常定义
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(str, Enum):
    """错误类型"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    THUMBNAIL_ERROR = "THUMBNAIL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class FileManagerError(Exception):
    """文件管理基础异常"""

    type: ErrorType = ErrorType.INTERNAL_ERROR

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
        }


class ValidationError(FileManagerError):
    """参数错误、越权操作、非空文件夹删除等业务校验失败"""
    type = ErrorType.VALIDATION_ERROR

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        context = {}
        if field is not None:
            context["field"] = field
        if value is not None:
            context["value"] = value
        super().__init__(message, context)
        self.field = field


class StoredFileNotFoundError(FileManagerError):
    type = ErrorType.FILE_NOT_FOUND

    def __init__(self, file_id: str, user_id: Optional[str] = None):
        super().__init__("文件不存在", {"fileId": file_id, "userId": user_id})
        self.file_id = file_id


class FolderNotFoundError(FileManagerError):
    type = ErrorType.FOLDER_NOT_FOUND

    def __init__(self, folder_id: str, user_id: Optional[str] = None):
        super().__init__("文件夹不存在", {"folderId": folder_id, "userId": user_id})
        self.folder_id = folder_id


class UploadError(FileManagerError):
    """文件大小/类型不合法或写盘失败"""
    type = ErrorType.UPLOAD_ERROR


class ThumbnailError(FileManagerError):
    type = ErrorType.THUMBNAIL_ERROR


class DatabaseError(FileManagerError):
    type = ErrorType.DATABASE_ERROR

    def __init__(self, message: str, operation: Optional[str] = None, table: Optional[str] = None):
        super().__init__(message, {"operation": operation, "table": table})
        self.operation = operation
        self.table = table


class ConfigurationError(FileManagerError):
    type = ErrorType.CONFIGURATION_ERROR
