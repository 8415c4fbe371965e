"""
访问控制策略
"""
from typing import Optional, Set

from filemanager.core.exceptions import ValidationError
from filemanager.models.file import File
from filemanager.models.folder import Folder
from filemanager.repositories.folder_repository import FolderRepository
from filemanager.repositories.share_repository import FileShareRepository, FolderShareRepository
from filemanager.schemas.file import AccessType
from filemanager.schemas.share import AccessLevel


class AccessPolicy:
    """
    查看: 所有者、被共享（文件本身或所在文件夹）、公开文件、公开文件夹中的文件
    修改（重命名/删除/移动/共享/可见性）: 仅所有者
    文件夹的 write 共享允许向该文件夹添加内容（上传、新建子文件夹、移入文件）
    """

    def __init__(
        self,
        folders: FolderRepository,
        file_shares: FileShareRepository,
        folder_shares: FolderShareRepository
    ):
        self.folders = folders
        self.file_shares = file_shares
        self.folder_shares = folder_shares

    @staticmethod
    def is_owner(resource, user_id: Optional[str]) -> bool:
        return user_id is not None and resource.owner_id == user_id

    def require_owner(self, resource, user_id: Optional[str], action: str) -> None:
        if not self.is_owner(resource, user_id):
            raise ValidationError(
                f"只有所有者可以{action}",
                field="requesterId",
                value=user_id,
            )

    async def is_public_file(self, file: File) -> bool:
        if file.access_type == AccessType.PUBLIC.value:
            return True
        if file.folder_id:
            folder = await self.folders.find_by_id(file.folder_id)
            return bool(folder and folder.is_public)
        return False

    async def can_view_file(self, file: File, user_id: Optional[str]) -> bool:
        if self.is_owner(file, user_id):
            return True
        if await self.is_public_file(file):
            return True
        if user_id is None:
            return False
        if await self.file_shares.find_one(file.id, user_id):
            return True
        return await self.folder_shares.find_for_user(file.folder_id, user_id) is not None

    async def can_write_folder(self, folder: Folder, user_id: Optional[str]) -> bool:
        if self.is_owner(folder, user_id):
            return True
        share = await self.folder_shares.find_for_user(folder.id, user_id)
        return share is not None and share.access_level == AccessLevel.WRITE.value

    async def folder_audience(self, folder: Optional[Folder]) -> Set[str]:
        """文件夹变更影响的用户: 所有者和共享对象"""
        if folder is None:
            return set()
        users = {folder.owner_id}
        users.update(await self.folder_shares.recipients(folder.id))
        return users

    async def file_audience(self, file: File) -> Set[str]:
        """文件变更影响的用户: 所有者、文件共享对象、所在文件夹的所有者和共享对象"""
        users = {file.owner_id}
        users.update(await self.file_shares.recipients(file.id))
        if file.folder_id:
            users.update(await self.folder_audience(await self.folders.find_by_id(file.folder_id)))
        return users
