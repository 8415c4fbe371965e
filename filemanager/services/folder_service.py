"""
文件夹管理服务
"""
import logging
import re
import uuid
from typing import Iterable, List, Optional, Set

from filemanager.cache.response_cache import ResponseCache
from filemanager.core.exceptions import (
    ConfigurationError, DatabaseError, FolderNotFoundError, ValidationError
)
from filemanager.models.file import File
from filemanager.models.folder import Folder
from filemanager.repositories.file_repository import FileRepository
from filemanager.repositories.folder_repository import FolderRepository
from filemanager.repositories.share_repository import FolderShareRepository
from filemanager.schemas.file import FileResponse
from filemanager.schemas.folder import FolderResponse, FolderTreeNode, SharedFolderResponse
from filemanager.schemas.share import AccessLevel, ShareResponse
from filemanager.services.access_service import AccessPolicy
from filemanager.storage.local import LocalFileStorage

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
INVALID_NAME_CHARS = re.compile(r'[<>:"/\\|?*]')

FOLDER_ENTITIES = ("folders", "folders-tree")
# 可见性或共享变化同时影响文件列表
VISIBILITY_ENTITIES = ("folders", "folders-tree", "files", "file")


def validate_folder_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("文件夹名称不能为空", field="name", value=name)
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"文件夹名称不能超过{MAX_NAME_LENGTH}个字符", field="name", value=name)
    if INVALID_NAME_CHARS.search(name):
        raise ValidationError('文件夹名称不能包含以下字符: < > : " / \\ | ? *', field="name", value=name)
    return name


def normalize_folder_id(folder_id: Optional[str]) -> Optional[str]:
    """空字符串等同于根目录 (None)"""
    return folder_id or None


def parse_access_level(access_level) -> str:
    try:
        return AccessLevel(access_level).value
    except ValueError:
        raise ValidationError("无效的权限级别", field="accessLevel", value=access_level) from None


def build_folder_tree(
    folders: List[Folder],
    files: List[File],
    parent_id: Optional[str] = None,
    visited: Optional[Set[str]] = None
) -> List[FolderTreeNode]:
    """
    构建文件夹树结构
    """
    if visited is None:
        visited = set()
    result = []

    # 获取当前层级的文件夹
    current_folders = [f for f in folders if f.parent_id == parent_id]

    for folder in current_folders:
        # 数据异常导致的环
        if folder.id in visited:
            logger.warning("文件夹层级存在环，跳过: %s", folder.id)
            continue
        visited.add(folder.id)

        node = FolderTreeNode.from_model(
            folder,
            files=[FileResponse.from_model(f) for f in files if f.folder_id == folder.id],
            subfolders=build_folder_tree(folders, files, folder.id, visited)
        )
        result.append(node)

    return result


class FolderService:
    """文件夹层级管理：创建、查询、重命名、删除、共享"""

    def __init__(
        self,
        folders: FolderRepository,
        files: FileRepository,
        folder_shares: FolderShareRepository,
        storage: LocalFileStorage,
        policy: AccessPolicy,
        cache: ResponseCache
    ):
        self.folders = folders
        self.files = files
        self.folder_shares = folder_shares
        self.storage = storage
        self.policy = policy
        self.cache = cache

    async def _get_folder(self, folder_id: str, user_id: Optional[str] = None) -> Folder:
        folder = await self.folders.find_by_id(folder_id)
        if not folder:
            raise FolderNotFoundError(folder_id, user_id)
        return folder

    async def _invalidate(
        self,
        folders: Iterable[Optional[Folder]],
        entities: Iterable[str] = FOLDER_ENTITIES,
        extra_users: Iterable[Optional[str]] = (),
        everyone: bool = False
    ) -> None:
        """清除受影响用户（所有者、共享对象）的缓存；公开文件夹清除所有用户"""
        users = set(u for u in extra_users if u)
        try:
            for folder in folders:
                if folder is None:
                    continue
                users.update(await self.policy.folder_audience(folder))
                everyone = everyone or folder.is_public
        except DatabaseError:
            logger.warning("查询缓存失效范围失败，清除所有用户缓存")
            everyone = True
        await self.cache.invalidate(entities, users, everyone=everyone)

    async def create_folder(self, name: str, parent_id: Optional[str], owner_id: str) -> FolderResponse:
        """
        创建文件夹

        先创建物理目录再写入数据库；写库失败时删除目录
        """
        parent_id = normalize_folder_id(parent_id)
        name = validate_folder_name(name)

        parent = None
        if parent_id:
            parent = await self._get_folder(parent_id, owner_id)
            if not await self.policy.can_write_folder(parent, owner_id):
                raise ValidationError("无权在该文件夹中创建子文件夹", field="parentId", value=parent_id)

        # 检查同一位置是否已有同名文件夹
        if await self.folders.find_sibling_by_name(name, parent_id, owner_id):
            raise ValidationError("同一位置已存在同名文件夹", field="name", value=name)

        folder_id = str(uuid.uuid4())
        await self.storage.make_dir(folder_id)
        try:
            folder = await self.folders.create(
                folder_id,
                name,
                owner_id,
                parent_id=parent_id,
                is_public=bool(parent and parent.is_public)
            )
        except DatabaseError:
            await self.storage.remove_dir(folder_id)
            raise

        logger.info("创建文件夹: id=%s name=%s owner=%s parent=%s", folder.id, name, owner_id, parent_id)
        await self._invalidate([folder, parent])
        return FolderResponse.from_model(folder)

    async def get_folders(self, parent_id: Optional[str] = None) -> List[FolderResponse]:
        """父文件夹下的所有文件夹（不区分所有者）"""
        parent_id = normalize_folder_id(parent_id)
        cache_id = f"all:{parent_id or 'root'}"
        cached = await self.cache.get_models("folders", cache_id, FolderResponse)
        if cached is not None:
            return cached

        folders = [FolderResponse.from_model(f) for f in await self.folders.find_by_parent(parent_id)]
        await self.cache.set_models("folders", cache_id, folders)
        return folders

    async def get_folders_for_user(self, parent_id: Optional[str], owner_id: str) -> List[FolderResponse]:
        parent_id = normalize_folder_id(parent_id)
        cache_id = f"owned:{parent_id or 'root'}"
        cached = await self.cache.get_models("folders", cache_id, FolderResponse, owner_id)
        if cached is not None:
            return cached

        folders = [
            FolderResponse.from_model(f)
            for f in await self.folders.find_by_parent_for_owner(parent_id, owner_id)
        ]
        await self.cache.set_models("folders", cache_id, folders, owner_id)
        return folders

    async def get_visible_folders(self, parent_id: Optional[str], user_id: str) -> List[FolderResponse]:
        """自己的、共享给自己的和公开的文件夹"""
        parent_id = normalize_folder_id(parent_id)
        cache_id = f"list:{parent_id or 'root'}"
        cached = await self.cache.get_models("folders", cache_id, FolderResponse, user_id)
        if cached is not None:
            return cached

        folders = [
            FolderResponse.from_model(f)
            for f in await self.folders.find_by_parent_visible_to(parent_id, user_id)
        ]
        await self.cache.set_models("folders", cache_id, folders, user_id)
        return folders

    async def get_folder_tree(self, parent_id: Optional[str], owner_id: str) -> List[FolderTreeNode]:
        """
        获取用户的文件夹树（每个节点包含文件和子文件夹）
        """
        parent_id = normalize_folder_id(parent_id)
        if parent_id:
            await self._get_folder(parent_id, owner_id)

        cache_id = f"tree:{parent_id or 'root'}"
        cached = await self.cache.get_models("folders-tree", cache_id, FolderTreeNode, owner_id)
        if cached is not None:
            return cached

        folders = await self.folders.find_all_by_owner(owner_id)
        files = await self.files.find_by_folders([f.id for f in folders])
        tree = build_folder_tree(folders, files, parent_id)

        await self.cache.set_models("folders-tree", cache_id, tree, owner_id)
        return tree

    async def update_folder(self, folder_id: str, name: str, requester_id: Optional[str] = None) -> FolderResponse:
        """重命名文件夹（只修改元数据，物理目录按 id 命名不受影响）"""
        name = validate_folder_name(name)
        folder = await self._get_folder(folder_id, requester_id)
        if requester_id is not None:
            self.policy.require_owner(folder, requester_id, "重命名文件夹")

        if await self.folders.find_sibling_by_name(name, folder.parent_id, folder.owner_id, exclude_id=folder.id):
            raise ValidationError("同一位置已存在同名文件夹", field="name", value=name)

        updated = await self.folders.update(folder_id, name=name)
        if updated is None:
            raise FolderNotFoundError(folder_id, requester_id)

        logger.info("重命名文件夹: id=%s name=%s", folder_id, name)
        await self._invalidate([updated], extra_users=[requester_id])
        return FolderResponse.from_model(updated)

    async def delete_folder(self, folder_id: str, requester_id: Optional[str] = None) -> None:
        """
        删除空文件夹

        存在子文件夹或文件时抛出 ValidationError，数据库和磁盘都不做修改
        """
        folder = await self._get_folder(folder_id, requester_id)
        if requester_id is not None:
            self.policy.require_owner(folder, requester_id, "删除文件夹")

        # 检查是否有子文件夹
        if await self.folders.count_children(folder_id) > 0:
            raise ValidationError("文件夹不为空，请先删除或移动子文件夹", field="folderId", value=folder_id)

        # 检查是否有文件
        if await self.files.count_by_folder(folder_id) > 0:
            raise ValidationError("文件夹不为空，请先删除或移动其中的文件", field="folderId", value=folder_id)

        # 共享记录随文件夹一起删除，先记下受影响的用户
        audience = await self.policy.folder_audience(folder)
        parent = await self.folders.find_by_id(folder.parent_id) if folder.parent_id else None

        await self.storage.remove_dir(folder_id)
        try:
            await self.folders.delete(folder_id)
        except DatabaseError:
            try:
                await self.storage.make_dir(folder_id)
            except ConfigurationError:
                logger.error("恢复文件夹目录失败: %s", folder_id)
            raise

        logger.info("删除文件夹: id=%s", folder_id)
        await self._invalidate([parent], extra_users=audience | {requester_id}, everyone=folder.is_public)

    async def set_folder_public(self, folder_id: str, is_public: bool, requester_id: str) -> FolderResponse:
        folder = await self._get_folder(folder_id, requester_id)
        self.policy.require_owner(folder, requester_id, "修改文件夹可见性")

        updated = await self.folders.update(folder_id, is_public=bool(is_public))
        if updated is None:
            raise FolderNotFoundError(folder_id, requester_id)

        logger.info("修改文件夹可见性: id=%s public=%s", folder_id, is_public)
        await self._invalidate([updated], entities=VISIBILITY_ENTITIES, everyone=True)
        return FolderResponse.from_model(updated)

    async def share_folder_with_users(
        self,
        folder_id: str,
        owner_id: str,
        user_ids: List[str],
        access_level: str = AccessLevel.WRITE.value
    ) -> List[ShareResponse]:
        """
        将文件夹共享给多个用户

        逐个写入，单个用户失败时记录日志并跳过；返回成功写入的共享记录
        """
        if not user_ids:
            raise ValidationError("至少需要指定一个共享用户", field="userIds", value=user_ids)
        level = parse_access_level(access_level)

        folder = await self._get_folder(folder_id, owner_id)
        self.policy.require_owner(folder, owner_id, "共享文件夹")

        shares = []
        for user_id in dict.fromkeys(user_ids):
            if not user_id or user_id == folder.owner_id:
                continue
            try:
                share = await self.folder_shares.upsert(folder.id, user_id, owner_id, level)
            except DatabaseError:
                logger.warning("共享文件夹失败，跳过: folder=%s user=%s", folder.id, user_id)
                continue
            shares.append(ShareResponse.from_model(share, folder.id))

        logger.info("共享文件夹: id=%s users=%d level=%s", folder.id, len(shares), level)
        await self._invalidate(
            [folder],
            entities=VISIBILITY_ENTITIES,
            extra_users=[s.sharedWithUserId for s in shares]
        )
        return shares

    async def revoke_folder_share(self, folder_id: str, owner_id: str, user_id: str) -> bool:
        folder = await self._get_folder(folder_id, owner_id)
        self.policy.require_owner(folder, owner_id, "取消共享")

        removed = await self.folder_shares.delete_by_resource_and_user(folder.id, user_id)
        if removed:
            logger.info("取消文件夹共享: id=%s user=%s", folder.id, user_id)
            await self._invalidate([folder], entities=VISIBILITY_ENTITIES, extra_users=[user_id])
        return removed

    async def get_folder_shares(self, folder_id: str, owner_id: str) -> List[ShareResponse]:
        folder = await self._get_folder(folder_id, owner_id)
        self.policy.require_owner(folder, owner_id, "查看共享记录")
        return [ShareResponse.from_model(s, folder.id) for s in await self.folder_shares.find_by_resource(folder.id)]

    async def get_folders_shared_with_user(self, user_id: str) -> List[SharedFolderResponse]:
        """
        共享给用户的文件夹，附带权限级别、共享人和共享时间
        """
        cached = await self.cache.get_models("folders", "shared", SharedFolderResponse, user_id)
        if cached is not None:
            return cached

        folders = [
            SharedFolderResponse.from_model(
                folder,
                accessLevel=share.access_level,
                sharedByUserId=share.shared_by_user_id,
                sharedAt=share.created_at
            )
            for folder, share in await self.folder_shares.find_shared_with(user_id)
        ]
        await self.cache.set_models("folders", "shared", folders, user_id)
        return folders
