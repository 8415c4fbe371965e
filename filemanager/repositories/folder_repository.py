"""
文件夹仓储
"""
from typing import List, Optional

from sqlalchemy import select, delete, and_, or_, func

from filemanager.models.folder import Folder
from filemanager.models.share import FolderShare
from filemanager.repositories.base import BaseRepository


class FolderRepository(BaseRepository):
    table_name = "folders"

    async def create(
        self,
        folder_id: str,
        name: str,
        owner_id: str,
        parent_id: Optional[str] = None,
        is_public: bool = False
    ) -> Folder:
        async with self.session("create") as db:
            folder = Folder(
                id=folder_id,
                name=name,
                parent_id=parent_id,
                owner_id=owner_id,
                is_public=is_public
            )
            db.add(folder)
            await db.commit()
            await db.refresh(folder)
            return folder

    async def find_by_id(self, folder_id: str) -> Optional[Folder]:
        async with self.session("find_by_id") as db:
            result = await db.execute(select(Folder).where(Folder.id == folder_id))
            return result.scalar_one_or_none()

    async def find_by_parent(self, parent_id: Optional[str]) -> List[Folder]:
        """按父文件夹查询（parent_id 为 None 表示根目录）"""
        async with self.session("find_by_parent") as db:
            result = await db.execute(
                select(Folder)
                .where(self._parent_clause(parent_id))
                .order_by(Folder.name)
            )
            return list(result.scalars().all())

    async def find_by_parent_for_owner(self, parent_id: Optional[str], owner_id: str) -> List[Folder]:
        async with self.session("find_by_parent_for_owner") as db:
            result = await db.execute(
                select(Folder)
                .where(and_(self._parent_clause(parent_id), Folder.owner_id == owner_id))
                .order_by(Folder.name)
            )
            return list(result.scalars().all())

    async def find_by_parent_visible_to(self, parent_id: Optional[str], user_id: str) -> List[Folder]:
        """查询用户可见的子文件夹：自己的、共享给自己的、公开的"""
        async with self.session("find_by_parent_visible_to") as db:
            shared = select(FolderShare.folder_id).where(FolderShare.shared_with_user_id == user_id)
            result = await db.execute(
                select(Folder)
                .where(
                    and_(
                        self._parent_clause(parent_id),
                        or_(
                            Folder.owner_id == user_id,
                            Folder.is_public.is_(True),
                            Folder.id.in_(shared)
                        )
                    )
                )
                .order_by(Folder.name)
            )
            return list(result.scalars().all())

    async def find_all_by_owner(self, owner_id: str) -> List[Folder]:
        async with self.session("find_all_by_owner") as db:
            result = await db.execute(
                select(Folder).where(Folder.owner_id == owner_id).order_by(Folder.name)
            )
            return list(result.scalars().all())

    async def find_sibling_by_name(
        self,
        name: str,
        parent_id: Optional[str],
        owner_id: str,
        exclude_id: Optional[str] = None
    ) -> Optional[Folder]:
        """同一位置下同名（不区分大小写）的文件夹"""
        async with self.session("find_sibling_by_name") as db:
            query = select(Folder).where(
                and_(
                    self._parent_clause(parent_id),
                    Folder.owner_id == owner_id,
                    func.lower(Folder.name) == name.lower()
                )
            )
            if exclude_id:
                query = query.where(Folder.id != exclude_id)
            result = await db.execute(query.limit(1))
            return result.scalar_one_or_none()

    async def count_children(self, folder_id: str) -> int:
        async with self.session("count_children") as db:
            result = await db.execute(
                select(func.count()).select_from(Folder).where(Folder.parent_id == folder_id)
            )
            return result.scalar_one()

    async def update(self, folder_id: str, **values) -> Optional[Folder]:
        async with self.session("update") as db:
            result = await db.execute(select(Folder).where(Folder.id == folder_id))
            folder = result.scalar_one_or_none()
            if not folder:
                return None
            for key, value in values.items():
                setattr(folder, key, value)
            folder.updated_at = func.now()
            await db.commit()
            await db.refresh(folder)
            return folder

    async def delete(self, folder_id: str) -> bool:
        async with self.session("delete") as db:
            # 先删除共享记录（SQLite 默认不启用外键级联）
            await db.execute(delete(FolderShare).where(FolderShare.folder_id == folder_id))
            result = await db.execute(delete(Folder).where(Folder.id == folder_id))
            await db.commit()
            return result.rowcount > 0

    @staticmethod
    def _parent_clause(parent_id: Optional[str]):
        if parent_id is None:
            return Folder.parent_id.is_(None)
        return Folder.parent_id == parent_id
