"""
应用上下文：按配置组装数据库、存储、缓存和服务
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from filemanager.cache.factory import create_cache_backend
from filemanager.cache.response_cache import ResponseCache
from filemanager.cache.strategy import CacheStrategy
from filemanager.core.config import Settings, validate_settings
from filemanager.core.logging import setup_logging
from filemanager.db.database import create_engine, create_session_factory, init_db
from filemanager.repositories import (
    FileRepository, FileShareRepository, FolderRepository, FolderShareRepository
)
from filemanager.services import AccessPolicy, FileService, FolderService, ThumbnailService
from filemanager.storage.local import LocalFileStorage

logger = logging.getLogger(__name__)


class AppContext:
    """每个进程创建一次，结束时调用 close()"""

    def __init__(
        self,
        settings: Settings,
        engine: AsyncEngine,
        session_factory: async_sessionmaker,
        storage: LocalFileStorage,
        cache: ResponseCache
    ):
        self.settings = settings
        self.engine = engine
        self.session_factory = session_factory
        self.storage = storage
        self.cache = cache

        self.folder_repository = FolderRepository(session_factory)
        self.file_repository = FileRepository(session_factory)
        self.file_share_repository = FileShareRepository(session_factory)
        self.folder_share_repository = FolderShareRepository(session_factory)

        self.policy = AccessPolicy(
            self.folder_repository,
            self.file_share_repository,
            self.folder_share_repository
        )
        self.thumbnails = ThumbnailService(
            storage,
            size=settings.THUMBNAIL_SIZE,
            quality=settings.THUMBNAIL_QUALITY,
            enabled=settings.ENABLE_THUMBNAILS
        )
        self.folders = FolderService(
            self.folder_repository,
            self.file_repository,
            self.folder_share_repository,
            storage,
            self.policy,
            cache
        )
        self.files = FileService(
            self.file_repository,
            self.folder_repository,
            self.file_share_repository,
            storage,
            self.thumbnails,
            self.policy,
            cache,
            max_file_size=settings.max_upload_bytes,
            allowed_types=settings.ALLOWED_FILE_TYPES
        )

    @classmethod
    async def create(cls, settings: Optional[Settings] = None, init_tables: bool = False) -> "AppContext":
        settings = settings or Settings()
        setup_logging(settings.LOG_LEVEL)
        validate_settings(settings)

        storage = LocalFileStorage(settings.UPLOAD_PATH, settings.THUMBNAIL_PATH)
        storage.ensure_directories()

        engine = create_engine(settings)
        if init_tables:
            await init_db(engine)

        backend = await create_cache_backend(settings)
        cache = ResponseCache(backend, CacheStrategy(settings.CACHE_PREFIX))

        logger.info("%s %s 已启动，缓存模式: %s", settings.APP_NAME, settings.APP_VERSION, backend.mode.value)
        return cls(settings, engine, create_session_factory(engine), storage, cache)

    @property
    def cache_mode(self):
        return self.cache.backend.mode

    async def close(self) -> None:
        await self.cache.close()
        await self.engine.dispose()
