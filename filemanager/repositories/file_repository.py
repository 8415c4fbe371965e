"""
文件仓储
"""
from typing import List, Optional, Sequence

from sqlalchemy import select, delete, and_, or_, func

from filemanager.models.file import File
from filemanager.models.folder import Folder
from filemanager.models.share import FileShare, FolderShare
from filemanager.repositories.base import BaseRepository, escape_like


def visible_to(user_id: Optional[str]):
    """
    文件可见性条件：所有者、被共享（文件或所在文件夹）、公开文件、公开文件夹中的文件
    """
    public_folders = select(Folder.id).where(Folder.is_public.is_(True))
    conditions = [
        File.access_type == "public",
        File.folder_id.in_(public_folders),
    ]
    if user_id is not None:
        conditions.extend([
            File.owner_id == user_id,
            File.id.in_(
                select(FileShare.file_id).where(FileShare.shared_with_user_id == user_id)
            ),
            File.folder_id.in_(
                select(FolderShare.folder_id).where(FolderShare.shared_with_user_id == user_id)
            ),
        ])
    return or_(*conditions)


class FileRepository(BaseRepository):
    table_name = "files"

    async def create(
        self,
        file_id: str,
        filename: str,
        original_name: str,
        file_path: str,
        file_size: int,
        mime_type: str,
        owner_id: str,
        folder_id: Optional[str] = None,
        thumbnail_path: Optional[str] = None,
        access_type: str = "private"
    ) -> File:
        async with self.session("create") as db:
            file = File(
                id=file_id,
                filename=filename,
                original_name=original_name,
                file_path=file_path,
                thumbnail_path=thumbnail_path,
                file_size=file_size,
                mime_type=mime_type,
                folder_id=folder_id,
                owner_id=owner_id,
                access_type=access_type
            )
            db.add(file)
            await db.commit()
            await db.refresh(file)
            return file

    async def find_by_id(self, file_id: str) -> Optional[File]:
        async with self.session("find_by_id") as db:
            result = await db.execute(select(File).where(File.id == file_id))
            return result.scalar_one_or_none()

    async def find_by_folder_visible_to(self, folder_id: Optional[str], user_id: Optional[str]) -> List[File]:
        async with self.session("find_by_folder_visible_to") as db:
            result = await db.execute(
                select(File)
                .where(and_(self._folder_clause(folder_id), visible_to(user_id)))
                .order_by(File.created_at.desc(), File.id)
            )
            return list(result.scalars().all())

    async def find_by_folders(self, folder_ids: Sequence[str]) -> List[File]:
        """批量查询多个文件夹中的文件（用于构建文件夹树）"""
        if not folder_ids:
            return []
        async with self.session("find_by_folders") as db:
            result = await db.execute(
                select(File)
                .where(File.folder_id.in_(list(folder_ids)))
                .order_by(File.created_at.desc(), File.id)
            )
            return list(result.scalars().all())

    async def count_by_folder(self, folder_id: str) -> int:
        async with self.session("count_by_folder") as db:
            result = await db.execute(
                select(func.count()).select_from(File).where(File.folder_id == folder_id)
            )
            return result.scalar_one()

    async def search(self, query: str, user_id: Optional[str]) -> List[File]:
        """按原始文件名或存储文件名做子串匹配（不区分大小写），只返回用户可见的文件"""
        pattern = f"%{escape_like(query)}%"
        async with self.session("search") as db:
            result = await db.execute(
                select(File)
                .where(
                    and_(
                        or_(
                            File.original_name.ilike(pattern, escape="\\"),
                            File.filename.ilike(pattern, escape="\\")
                        ),
                        visible_to(user_id)
                    )
                )
                .order_by(File.created_at.desc(), File.id)
            )
            return list(result.scalars().all())

    async def update(self, file_id: str, **values) -> Optional[File]:
        async with self.session("update") as db:
            result = await db.execute(select(File).where(File.id == file_id))
            file = result.scalar_one_or_none()
            if not file:
                return None
            for key, value in values.items():
                setattr(file, key, value)
            file.updated_at = func.now()
            await db.commit()
            await db.refresh(file)
            return file

    async def delete(self, file_id: str) -> bool:
        async with self.session("delete") as db:
            await db.execute(delete(FileShare).where(FileShare.file_id == file_id))
            result = await db.execute(delete(File).where(File.id == file_id))
            await db.commit()
            return result.rowcount > 0

    @staticmethod
    def _folder_clause(folder_id: Optional[str]):
        if folder_id is None:
            return File.folder_id.is_(None)
        return File.folder_id == folder_id
