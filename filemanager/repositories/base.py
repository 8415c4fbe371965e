"""
仓储基类
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filemanager.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


def escape_like(value: str) -> str:
    """转义 LIKE 通配符，配合 escape='\\' 使用"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class BaseRepository:
    """
    每个方法独立打开会话并提交；数据库异常统一记录日志后转换为 DatabaseError
    """

    table_name = ""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @asynccontextmanager
    async def session(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "数据库操作失败: table=%s operation=%s error=%s",
                    self.table_name, operation, e,
                )
                raise DatabaseError(
                    f"数据库操作失败: {self.table_name}.{operation}",
                    operation=operation,
                    table=self.table_name,
                ) from e
