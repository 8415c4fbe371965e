"""
本地文件存储
"""
import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from filemanager.core.exceptions import ConfigurationError, UploadError

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".part"


class LocalFileStorage:
    """
    上传根目录下的物理存储

    目录约定:
      - 文件夹: {upload_path}/{folder_id}
      - 文件夹中的文件: {upload_path}/{folder_id}/{filename}
      - 根目录文件: {upload_path}/{filename}
      - 缩略图: {thumbnail_path}/thumb_{文件名主干}.jpg

    阻塞的文件系统调用都放到线程中执行
    """

    def __init__(self, upload_path: str, thumbnail_path: str):
        self.upload_path = Path(upload_path)
        self.thumbnail_path = Path(thumbnail_path)

    def ensure_directories(self) -> None:
        """创建上传目录和缩略图目录"""
        for directory in (self.upload_path, self.thumbnail_path):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.exception("无法创建存储目录: %s", directory)
                raise ConfigurationError(
                    f"无法创建存储目录: {directory}",
                    {"path": str(directory), "error": str(e)},
                ) from e

    def folder_path(self, folder_id: str) -> str:
        return str(self.upload_path / folder_id)

    def build_path(self, filename: str, folder_id: Optional[str] = None) -> str:
        if folder_id:
            return str(self.upload_path / folder_id / filename)
        return str(self.upload_path / filename)

    def build_thumbnail_path(self, filename: str) -> str:
        return str(self.thumbnail_path / f"thumb_{Path(filename).stem}.jpg")

    async def make_dir(self, folder_id: str) -> str:
        """创建文件夹对应的物理目录"""
        path = self.folder_path(folder_id)
        try:
            await asyncio.to_thread(os.makedirs, path, exist_ok=True)
        except OSError as e:
            logger.exception("创建文件夹目录失败: %s", path)
            raise ConfigurationError(
                "创建文件夹目录失败",
                {"path": path, "error": str(e)},
            ) from e
        logger.debug("已创建文件夹目录: %s", path)
        return path

    async def remove_dir(self, folder_id: str) -> bool:
        """
        删除文件夹对应的物理目录

        目录不存在或无法删除（例如残留了文件）时记录警告并返回 False
        """
        path = self.folder_path(folder_id)
        try:
            await asyncio.to_thread(os.rmdir, path)
        except FileNotFoundError:
            logger.warning("文件夹目录不存在，跳过删除: %s", path)
            return False
        except OSError as e:
            logger.warning("文件夹目录无法删除: %s (%s)", path, e)
            return False
        logger.debug("已删除文件夹目录: %s", path)
        return True

    async def save(self, data: bytes, filename: str, folder_id: Optional[str] = None) -> str:
        """
        写入文件内容，返回最终路径

        先写入同目录下的临时文件再原子替换；写入失败或被取消时清理残留文件
        """
        path = self.build_path(filename, folder_id)
        logger.info("写入文件: %s", path)
        task = asyncio.ensure_future(asyncio.to_thread(self._write, path, data))
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # 写线程无法中断，等它结束后再清理
            await asyncio.gather(task, return_exceptions=True)
            await asyncio.to_thread(self._discard, path)
            logger.warning("上传被取消，已清理: %s", path)
            raise
        except OSError as e:
            logger.exception("写入文件失败: %s", path)
            raise UploadError("文件写入失败", {"path": path, "error": str(e)}) from e
        logger.info("文件写入成功: %s (%d 字节)", path, len(data))
        return path

    async def save_thumbnail(self, data: bytes, filename: str) -> str:
        path = self.build_thumbnail_path(filename)
        await asyncio.to_thread(self._write, path, data)
        return path

    async def delete(self, path: str, missing_ok: bool = True) -> bool:
        """删除文件；文件不存在且 missing_ok 时返回 False"""
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError:
            if not missing_ok:
                raise
            logger.debug("文件不存在，跳过删除: %s", path)
            return False
        except OSError:
            logger.exception("删除文件失败: %s", path)
            raise
        logger.info("已删除文件: %s", path)
        return True

    async def rollback_upload(self, *paths: Optional[str]) -> None:
        """数据库写入失败后删除已写入的文件（尽力而为，失败只记录日志）"""
        for path in paths:
            if not path:
                continue
            logger.warning("回滚上传，删除文件: %s", path)
            try:
                await self.delete(path)
            except OSError:
                logger.exception("回滚上传失败，残留文件: %s", path)

    async def move(self, source: str, destination: str) -> str:
        """移动文件，必要时创建目标目录"""
        logger.info("移动文件: %s -> %s", source, destination)
        try:
            await asyncio.to_thread(self._move, source, destination)
        except OSError:
            logger.exception("移动文件失败: %s -> %s", source, destination)
            raise
        return destination

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.isfile, path)

    @staticmethod
    def _write(path: str, data: bytes) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        partial = path + PARTIAL_SUFFIX
        try:
            with open(partial, "wb") as f:
                f.write(data)
            os.replace(partial, path)
        except BaseException:
            if os.path.exists(partial):
                os.remove(partial)
            raise

    @staticmethod
    def _discard(path: str) -> None:
        for candidate in (path + PARTIAL_SUFFIX, path):
            if os.path.exists(candidate):
                os.remove(candidate)

    @staticmethod
    def _move(source: str, destination: str) -> None:
        os.makedirs(os.path.dirname(destination) or ".", exist_ok=True)
        shutil.move(source, destination)
