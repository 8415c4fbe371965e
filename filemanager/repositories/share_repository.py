"""
共享仓储（文件共享、文件夹共享）
"""
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import select, delete, and_

from filemanager.models.file import File
from filemanager.models.folder import Folder
from filemanager.models.share import FileShare, FolderShare
from filemanager.repositories.base import BaseRepository


class ShareRepository(BaseRepository):
    """
    共享记录的通用实现，子类指定共享表及被共享的资源表
    每个 (资源, 用户) 最多一条共享记录
    """

    model = None
    resource_model = None
    resource_key = ""

    @property
    def _resource_column(self):
        return getattr(self.model, self.resource_key)

    async def upsert(
        self,
        resource_id: str,
        shared_with_user_id: str,
        shared_by_user_id: str,
        access_level: str
    ):
        """创建共享；已存在时更新权限级别"""
        async with self.session("upsert") as db:
            result = await db.execute(
                select(self.model).where(
                    and_(
                        self._resource_column == resource_id,
                        self.model.shared_with_user_id == shared_with_user_id
                    )
                )
            )
            share = result.scalar_one_or_none()
            if share:
                share.access_level = access_level
                share.shared_by_user_id = shared_by_user_id
            else:
                share = self.model(
                    id=str(uuid.uuid4()),
                    shared_with_user_id=shared_with_user_id,
                    shared_by_user_id=shared_by_user_id,
                    access_level=access_level,
                    **{self.resource_key: resource_id}
                )
                db.add(share)
            await db.commit()
            await db.refresh(share)
            return share

    async def find_one(self, resource_id: str, user_id: str):
        async with self.session("find_one") as db:
            result = await db.execute(
                select(self.model).where(
                    and_(
                        self._resource_column == resource_id,
                        self.model.shared_with_user_id == user_id
                    )
                )
            )
            return result.scalar_one_or_none()

    async def find_by_resource(self, resource_id: str) -> list:
        async with self.session("find_by_resource") as db:
            result = await db.execute(
                select(self.model)
                .where(self._resource_column == resource_id)
                .order_by(self.model.created_at, self.model.id)
            )
            return list(result.scalars().all())

    async def find_shared_with(self, user_id: str) -> List[Tuple]:
        """查询共享给用户的资源，返回 (资源, 共享记录) 列表"""
        async with self.session("find_shared_with") as db:
            result = await db.execute(
                select(self.resource_model, self.model)
                .join(self.model, self._resource_column == self.resource_model.id)
                .where(self.model.shared_with_user_id == user_id)
                .order_by(self.model.created_at, self.model.id)
            )
            return [(row[0], row[1]) for row in result.all()]

    async def recipients(self, resource_id: str) -> List[str]:
        async with self.session("recipients") as db:
            result = await db.execute(
                select(self.model.shared_with_user_id).where(self._resource_column == resource_id)
            )
            return list(result.scalars().all())

    async def delete_by_resource_and_user(self, resource_id: str, user_id: str) -> bool:
        async with self.session("delete_by_resource_and_user") as db:
            result = await db.execute(
                delete(self.model).where(
                    and_(
                        self._resource_column == resource_id,
                        self.model.shared_with_user_id == user_id
                    )
                )
            )
            await db.commit()
            return result.rowcount > 0

    async def count_by_resource(self, resource_id: str) -> int:
        return len(await self.recipients(resource_id))


class FileShareRepository(ShareRepository):
    table_name = "file_shares"
    model = FileShare
    resource_model = File
    resource_key = "file_id"


class FolderShareRepository(ShareRepository):
    table_name = "folder_shares"
    model = FolderShare
    resource_model = Folder
    resource_key = "folder_id"

    async def find_for_user(self, folder_id: Optional[str], user_id: Optional[str]) -> Optional[FolderShare]:
        """根目录或匿名用户没有文件夹共享"""
        if folder_id is None or user_id is None:
            return None
        return await self.find_one(folder_id, user_id)
