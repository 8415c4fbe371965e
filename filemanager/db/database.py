"""
数据库连接和会话管理
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from filemanager.core.config import Settings

# 创建Base类
Base = declarative_base()


def create_engine(settings: Settings) -> AsyncEngine:
    """
    根据配置创建异步引擎
    """
    options = {
        "echo": settings.DB_ECHO,
        "pool_pre_ping": True,
    }
    # SQLite（测试/本地开发）不支持连接池参数
    if not settings.DATABASE_URL.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20)
    return create_async_engine(settings.DATABASE_URL, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """
    创建会话工厂
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    创建所有数据表（已存在的表不受影响）
    """
    # 导入模型以注册到 Base.metadata
    import filemanager.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
