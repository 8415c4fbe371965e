"""
文件管理服务
"""
import asyncio
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from filemanager.cache.response_cache import ResponseCache
from filemanager.cache.strategy import build_cache_id
from filemanager.core.exceptions import (
    DatabaseError, FolderNotFoundError, StoredFileNotFoundError, ThumbnailError,
    UploadError, ValidationError
)
from filemanager.models.file import File
from filemanager.models.folder import Folder
from filemanager.repositories.file_repository import FileRepository
from filemanager.repositories.folder_repository import FolderRepository
from filemanager.repositories.share_repository import FileShareRepository
from filemanager.schemas.file import (
    AccessType, DownloadInfo, FileResponse, MoveResult, SharedFileResponse, UploadMetadata
)
from filemanager.schemas.share import AccessLevel, ShareResponse
from filemanager.services.access_service import AccessPolicy
from filemanager.services.folder_service import normalize_folder_id, parse_access_level
from filemanager.services.thumbnail_service import ThumbnailService
from filemanager.storage.local import LocalFileStorage

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
MAX_NAME_LENGTH = 255
# 与后一个扩展名组成复合扩展名
COMPOUND_SUFFIXES = (".tar",)

FILE_ENTITIES = ("files", "file", "folders-tree")


def is_allowed_type(mime_type: str, allowed_types: Sequence[str]) -> bool:
    """精确匹配（不区分大小写）或 type/* 通配"""
    mime_type = mime_type.lower()
    for allowed in allowed_types:
        allowed = allowed.strip().lower()
        if allowed.endswith("/*"):
            if mime_type.startswith(allowed[:-1]):
                return True
        elif mime_type == allowed:
            return True
    return False


def file_extension(name: str) -> str:
    """文件扩展名，.tar.gz 这类复合扩展名整体返回"""
    suffixes = Path(name).suffixes
    if len(suffixes) >= 2 and suffixes[-2].lower() in COMPOUND_SUFFIXES:
        return "".join(suffixes[-2:])
    return Path(name).suffix


def clean_file_name(name: Optional[str]) -> str:
    name = (name or "").replace("\r", "").replace("\n", "").strip()
    if not name:
        raise ValidationError("文件名不能为空", field="name", value=name)
    return name


class FileService:
    """文件上传、下载、重命名、移动、删除、搜索和共享"""

    def __init__(
        self,
        files: FileRepository,
        folders: FolderRepository,
        file_shares: FileShareRepository,
        storage: LocalFileStorage,
        thumbnails: ThumbnailService,
        policy: AccessPolicy,
        cache: ResponseCache,
        max_file_size: int,
        allowed_types: Sequence[str]
    ):
        self.files = files
        self.folders = folders
        self.file_shares = file_shares
        self.storage = storage
        self.thumbnails = thumbnails
        self.policy = policy
        self.cache = cache
        self.max_file_size = max_file_size
        self.allowed_types = list(allowed_types)

    async def _get_file(self, file_id: str, user_id: Optional[str] = None) -> File:
        file = await self.files.find_by_id(file_id)
        if not file:
            raise StoredFileNotFoundError(file_id, user_id)
        return file

    async def _get_writable_folder(self, folder_id: str, user_id: str) -> Folder:
        folder = await self.folders.find_by_id(folder_id)
        if not folder:
            raise FolderNotFoundError(folder_id, user_id)
        if not await self.policy.can_write_folder(folder, user_id):
            raise ValidationError("无权向该文件夹添加文件", field="folderId", value=folder_id)
        return folder

    async def _invalidate(
        self,
        files: Iterable[File] = (),
        folders: Iterable[Optional[Folder]] = (),
        extra_users: Iterable[Optional[str]] = (),
        everyone: bool = False
    ) -> None:
        users = set(u for u in extra_users if u)
        try:
            for file in files:
                users.update(await self.policy.file_audience(file))
                everyone = everyone or await self.policy.is_public_file(file)
            for folder in folders:
                if folder is None:
                    continue
                users.update(await self.policy.folder_audience(folder))
                everyone = everyone or folder.is_public
        except DatabaseError:
            logger.warning("查询缓存失效范围失败，清除所有用户缓存")
            everyone = True
        await self.cache.invalidate(FILE_ENTITIES, users, everyone=everyone)

    async def upload(
        self,
        data: bytes,
        metadata: UploadMetadata,
        owner_id: str,
        folder_id: Optional[str] = None
    ) -> FileResponse:
        """
        上传文件

        先写磁盘再写数据库；写库失败时删除已写入的文件和缩略图
        """
        original_name = clean_file_name(metadata.originalName)
        if len(original_name) > MAX_NAME_LENGTH:
            raise ValidationError(f"文件名不能超过{MAX_NAME_LENGTH}个字符", field="originalName", value=original_name)

        mime_type = metadata.mimeType or mimetypes.guess_type(original_name)[0] or DEFAULT_MIME_TYPE
        if len(data) > self.max_file_size:
            raise UploadError(
                "文件大小超过限制",
                {"fileSize": len(data), "maxFileSize": self.max_file_size},
            )
        if not is_allowed_type(mime_type, self.allowed_types):
            raise UploadError("不支持的文件类型", {"mimeType": mime_type})

        folder_id = normalize_folder_id(folder_id)
        folder = None
        if folder_id:
            folder = await self._get_writable_folder(folder_id, owner_id)

        file_id = str(uuid.uuid4())
        filename = f"{file_id}{Path(original_name).suffix.lower()}"
        file_path = await self.storage.save(data, filename, folder_id)

        # 缩略图和写库任一步失败都删除已写入的文件
        thumbnail_path = None
        try:
            if self.thumbnails.supports(mime_type):
                try:
                    thumbnail_path = await self.thumbnails.generate(data, filename)
                except ThumbnailError as e:
                    logger.warning("缩略图生成失败，继续上传: %s (%s)", original_name, e.context.get("error"))

            file = await self.files.create(
                file_id=file_id,
                filename=filename,
                original_name=original_name,
                file_path=file_path,
                file_size=len(data),
                mime_type=mime_type,
                owner_id=owner_id,
                folder_id=folder_id,
                thumbnail_path=thumbnail_path,
                access_type=AccessType.PUBLIC.value if folder and folder.is_public else AccessType.PRIVATE.value
            )
        except asyncio.CancelledError:
            await self.storage.rollback_upload(file_path, self.storage.build_thumbnail_path(filename))
            raise
        except Exception:
            await self.storage.rollback_upload(file_path, thumbnail_path)
            raise

        logger.info("上传文件: id=%s name=%s size=%d owner=%s folder=%s",
                    file.id, original_name, file.file_size, owner_id, folder_id)
        await self._invalidate([file], [folder], extra_users=[owner_id])
        return FileResponse.from_model(file)

    async def download(self, file_id: str, requester_id: Optional[str]) -> DownloadInfo:
        """返回文件路径、MIME类型和展示用文件名，由调用方负责输出内容"""
        file = await self._get_file(file_id, requester_id)
        if not await self.policy.can_view_file(file, requester_id):
            raise ValidationError("无权访问该文件", field="fileId", value=file_id)

        if not await self.storage.exists(file.file_path):
            logger.error("文件记录存在但磁盘文件丢失: id=%s path=%s", file.id, file.file_path)
            raise StoredFileNotFoundError(file_id, requester_id)

        return DownloadInfo(filePath=file.file_path, fileName=file.original_name, mimeType=file.mime_type)

    async def get_file(self, file_id: str, requester_id: Optional[str]) -> FileResponse:
        cached = await self.cache.get_model("file", file_id, FileResponse, requester_id)
        if cached is not None:
            return cached

        file = await self._get_file(file_id, requester_id)
        if not await self.policy.can_view_file(file, requester_id):
            raise ValidationError("无权访问该文件", field="fileId", value=file_id)

        response = FileResponse.from_model(file)
        await self.cache.set_model("file", file_id, response, requester_id)
        return response

    async def list_files(self, folder_id: Optional[str], requester_id: Optional[str]) -> List[FileResponse]:
        """文件夹中用户可见的文件（folder_id 为 None 表示根目录）"""
        folder_id = normalize_folder_id(folder_id)
        if folder_id and not await self.folders.find_by_id(folder_id):
            raise FolderNotFoundError(folder_id, requester_id)

        cache_id = f"list:{folder_id or 'root'}"
        cached = await self.cache.get_models("files", cache_id, FileResponse, requester_id)
        if cached is not None:
            return cached

        files = [
            FileResponse.from_model(f)
            for f in await self.files.find_by_folder_visible_to(folder_id, requester_id)
        ]
        await self.cache.set_models("files", cache_id, files, requester_id)
        return files

    async def rename(self, file_id: str, new_name: str, requester_id: str) -> FileResponse:
        """
        修改展示用文件名，存储文件名和路径不变

        新名称没有扩展名时沿用原扩展名
        """
        file = await self._get_file(file_id, requester_id)
        self.policy.require_owner(file, requester_id, "重命名文件")

        name = clean_file_name(new_name)
        extension = file_extension(file.original_name)
        if extension and not Path(name).suffix:
            name = f"{name}{extension}"
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"文件名不能超过{MAX_NAME_LENGTH}个字符", field="name", value=name)

        updated = await self.files.update(file_id, original_name=name)
        if updated is None:
            raise StoredFileNotFoundError(file_id, requester_id)

        logger.info("重命名文件: id=%s name=%s", file_id, name)
        await self._invalidate([updated], extra_users=[requester_id])
        return FileResponse.from_model(updated)

    async def move(
        self,
        file_ids: Sequence[str],
        destination_folder_id: Optional[str],
        requester_id: str
    ) -> MoveResult:
        """
        批量移动文件

        逐个处理：不存在或不属于请求者的文件跳过；磁盘文件随记录一起移动，
        记录更新失败时把文件移回原处。只统计成功移动的数量
        """
        destination_folder_id = normalize_folder_id(destination_folder_id)
        destination = None
        if destination_folder_id:
            destination = await self._get_writable_folder(destination_folder_id, requester_id)

        moved = []
        source_folder_ids = set()
        for file_id in dict.fromkeys(file_ids):
            file = await self.files.find_by_id(file_id)
            if not file:
                logger.info("移动时文件不存在，跳过: %s", file_id)
                continue
            if not self.policy.is_owner(file, requester_id):
                logger.warning("移动时无权操作文件，跳过: id=%s requester=%s", file_id, requester_id)
                continue

            new_path = self.storage.build_path(file.filename, destination_folder_id)
            relocated = False
            if new_path != file.file_path:
                if await self.storage.exists(file.file_path):
                    try:
                        await self.storage.move(file.file_path, new_path)
                    except OSError:
                        continue
                    relocated = True
                else:
                    logger.warning("磁盘文件不存在，仅更新记录: id=%s path=%s", file.id, file.file_path)

            try:
                updated = await self.files.update(file.id, folder_id=destination_folder_id, file_path=new_path)
            except DatabaseError:
                updated = None
            if updated is None:
                if relocated:
                    await self._move_back(new_path, file.file_path)
                continue

            if file.folder_id:
                source_folder_ids.add(file.folder_id)
            moved.append(updated)

        logger.info("移动文件: 请求 %d 个，成功 %d 个，目标=%s", len(file_ids), len(moved), destination_folder_id)
        if moved:
            sources = [await self.folders.find_by_id(fid) for fid in source_folder_ids]
            await self._invalidate(moved, [destination, *sources], extra_users=[requester_id])
        return MoveResult(moved=len(moved))

    async def _move_back(self, current: str, original: str) -> None:
        try:
            await self.storage.move(current, original)
        except OSError:
            logger.error("文件移回失败，记录与磁盘不一致: %s -> %s", current, original)

    async def delete_file(self, file_id: str, requester_id: str) -> None:
        """
        删除文件记录（及共享记录），然后删除磁盘文件和缩略图

        磁盘删除失败只记录日志
        """
        file = await self._get_file(file_id, requester_id)
        self.policy.require_owner(file, requester_id, "删除文件")

        # 共享记录会一起删除，先记下受影响的用户
        audience = await self.policy.file_audience(file)
        public = await self.policy.is_public_file(file)

        if not await self.files.delete(file_id):
            raise StoredFileNotFoundError(file_id, requester_id)

        for path in (file.file_path, file.thumbnail_path):
            if not path:
                continue
            try:
                await self.storage.delete(path)
            except OSError:
                logger.warning("删除磁盘文件失败，已忽略: %s", path)

        logger.info("删除文件: id=%s", file_id)
        await self._invalidate(extra_users=audience, everyone=public)

    async def search_files(self, query: str, requester_id: Optional[str]) -> List[FileResponse]:
        """按文件名搜索（不区分大小写的子串匹配），只返回用户可见的文件"""
        query = (query or "").strip()
        if not query:
            raise ValidationError("搜索关键词不能为空", field="query", value=query)

        cache_id = build_cache_id("search", {"q": query})
        cached = await self.cache.get_models("files", cache_id, FileResponse, requester_id)
        if cached is not None:
            return cached

        files = [FileResponse.from_model(f) for f in await self.files.search(query, requester_id)]
        await self.cache.set_models("files", cache_id, files, requester_id)
        return files

    async def set_file_access(self, file_id: str, access_type: str, requester_id: str) -> FileResponse:
        try:
            value = AccessType(access_type).value
        except ValueError:
            raise ValidationError("无效的访问类型", field="accessType", value=access_type) from None

        file = await self._get_file(file_id, requester_id)
        self.policy.require_owner(file, requester_id, "修改文件可见性")

        # 仍有共享记录时不能回到 private
        if value == AccessType.PRIVATE.value and await self.file_shares.count_by_resource(file_id) > 0:
            value = AccessType.SHARED.value

        was_public = await self.policy.is_public_file(file)
        updated = await self.files.update(file_id, access_type=value)
        if updated is None:
            raise StoredFileNotFoundError(file_id, requester_id)

        logger.info("修改文件可见性: id=%s access=%s", file_id, value)
        await self._invalidate([updated], everyone=was_public)
        return FileResponse.from_model(updated)

    async def share_file_with_users(
        self,
        file_id: str,
        owner_id: str,
        user_ids: List[str],
        access_level: str = AccessLevel.READ.value
    ) -> List[ShareResponse]:
        """
        将文件共享给多个用户

        逐个写入，单个用户失败时记录日志并跳过；非公开文件标记为 shared
        """
        if not user_ids:
            raise ValidationError("至少需要指定一个共享用户", field="userIds", value=user_ids)
        level = parse_access_level(access_level)

        file = await self._get_file(file_id, owner_id)
        self.policy.require_owner(file, owner_id, "共享文件")

        shares = []
        for user_id in dict.fromkeys(user_ids):
            if not user_id or user_id == file.owner_id:
                continue
            try:
                share = await self.file_shares.upsert(file.id, user_id, owner_id, level)
            except DatabaseError:
                logger.warning("共享文件失败，跳过: file=%s user=%s", file.id, user_id)
                continue
            shares.append(ShareResponse.from_model(share, file.id))

        if shares and file.access_type != AccessType.PUBLIC.value:
            file = await self.files.update(file.id, access_type=AccessType.SHARED.value) or file

        logger.info("共享文件: id=%s users=%d level=%s", file.id, len(shares), level)
        await self._invalidate([file], extra_users=[s.sharedWithUserId for s in shares])
        return shares

    async def revoke_file_share(self, file_id: str, owner_id: str, user_id: str) -> bool:
        """取消共享；没有剩余共享的文件恢复为 private"""
        file = await self._get_file(file_id, owner_id)
        self.policy.require_owner(file, owner_id, "取消共享")

        removed = await self.file_shares.delete_by_resource_and_user(file.id, user_id)
        if not removed:
            return False

        if file.access_type == AccessType.SHARED.value and await self.file_shares.count_by_resource(file.id) == 0:
            file = await self.files.update(file.id, access_type=AccessType.PRIVATE.value) or file

        logger.info("取消文件共享: id=%s user=%s", file.id, user_id)
        await self._invalidate([file], extra_users=[user_id])
        return True

    async def get_file_shares(self, file_id: str, owner_id: str) -> List[ShareResponse]:
        file = await self._get_file(file_id, owner_id)
        self.policy.require_owner(file, owner_id, "查看共享记录")
        return [ShareResponse.from_model(s, file.id) for s in await self.file_shares.find_by_resource(file.id)]

    async def get_files_shared_with_user(self, user_id: str) -> List[SharedFileResponse]:
        cached = await self.cache.get_models("files", "shared", SharedFileResponse, user_id)
        if cached is not None:
            return cached

        files = [
            SharedFileResponse.from_model(
                file,
                accessLevel=share.access_level,
                sharedByUserId=share.shared_by_user_id,
                sharedAt=share.created_at
            )
            for file, share in await self.file_shares.find_shared_with(user_id)
        ]
        await self.cache.set_models("files", "shared", files, user_id)
        return files
