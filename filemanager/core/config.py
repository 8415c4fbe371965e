"""
应用配置文件
"""
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings

from filemanager.core.exceptions import ConfigurationError


DEFAULT_ALLOWED_FILE_TYPES = [
    "image/*",
    "video/*",
    "audio/*",
    "text/*",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/rtf",
    "application/vnd.oasis.opendocument.text",
    "application/vnd.oasis.opendocument.spreadsheet",
    "application/vnd.oasis.opendocument.presentation",
]


class Settings(BaseSettings):
    """应用配置"""

    # 应用基本配置
    APP_NAME: str = "MediaHub File Manager"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置
    DB_USERNAME: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "mediahub"
    DB_URL: Optional[str] = None  # 完整连接URL，设置后覆盖上面的分项配置
    DB_ECHO: bool = False

    # 存储配置
    UPLOAD_PATH: str = "./uploads"
    THUMBNAIL_PATH: str = "./thumbnails"
    MAX_FILE_SIZE: int = 100 * 1024 * 1024  # 100MB
    MAX_FILE_SIZE_MB: Optional[int] = None  # 设置后优先于 MAX_FILE_SIZE
    ALLOWED_FILE_TYPES: List[str] = DEFAULT_ALLOWED_FILE_TYPES
    ENABLE_THUMBNAILS: bool = True
    THUMBNAIL_SIZE: int = 200
    THUMBNAIL_QUALITY: int = 80

    # Redis缓存配置
    REDIS_ENABLED: bool = True
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    REDIS_SOCKET_TIMEOUT: float = 2.0
    CACHE_PREFIX: str = "mediahub:filemanager"

    @property
    def DATABASE_URL(self) -> str:
        """获取数据库连接URL"""
        if self.DB_URL:
            return self.DB_URL
        return f"postgresql+asyncpg://{self.DB_USERNAME}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def max_upload_bytes(self) -> int:
        """上传文件大小上限（字节）"""
        if self.MAX_FILE_SIZE_MB is not None:
            return self.MAX_FILE_SIZE_MB * 1024 * 1024
        return self.MAX_FILE_SIZE

    class Config:
        case_sensitive = True
        env_file = ".env"


def validate_settings(settings: Settings) -> None:
    """
    校验配置，发现问题时抛出 ConfigurationError

    Args:
        settings: 待校验的配置
    """
    errors = []

    if settings.max_upload_bytes <= 0:
        errors.append("MAX_FILE_SIZE / MAX_FILE_SIZE_MB 必须为正数")

    if not [t for t in settings.ALLOWED_FILE_TYPES if t.strip()]:
        errors.append("ALLOWED_FILE_TYPES 至少需要包含一个MIME类型")

    if not settings.UPLOAD_PATH.strip():
        errors.append("UPLOAD_PATH 不能为空")
    elif Path(settings.UPLOAD_PATH).exists() and not Path(settings.UPLOAD_PATH).is_dir():
        errors.append(f"UPLOAD_PATH 不是目录: {settings.UPLOAD_PATH}")

    if not settings.THUMBNAIL_PATH.strip():
        errors.append("THUMBNAIL_PATH 不能为空")

    if settings.THUMBNAIL_SIZE <= 0:
        errors.append("THUMBNAIL_SIZE 必须为正数")

    if not 0 < settings.REDIS_PORT <= 65535:
        errors.append("REDIS_PORT 必须是有效端口号 (1-65535)")

    if errors:
        raise ConfigurationError(
            "配置校验失败: " + "; ".join(errors),
            {"errors": errors},
        )
