"""
缩略图生成
"""
import asyncio
import io
import logging

from PIL import Image, UnidentifiedImageError

from filemanager.core.exceptions import ThumbnailError
from filemanager.storage.local import LocalFileStorage

logger = logging.getLogger(__name__)


class ThumbnailService:
    """图片等比缩放到 size x size 以内，保存为 JPEG"""

    def __init__(self, storage: LocalFileStorage, size: int = 200, quality: int = 80, enabled: bool = True):
        self.storage = storage
        self.size = size
        self.quality = quality
        self.enabled = enabled

    def supports(self, mime_type: str) -> bool:
        return self.enabled and mime_type.lower().startswith("image/")

    async def generate(self, data: bytes, filename: str) -> str:
        """
        生成缩略图并返回路径

        Raises:
            ThumbnailError: 图片无法解析或写入失败
        """
        try:
            thumbnail = await asyncio.to_thread(self._render, data)
            path = await self.storage.save_thumbnail(thumbnail, filename)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise ThumbnailError("缩略图生成失败", {"filename": filename, "error": str(e)}) from e
        logger.debug("已生成缩略图: %s", path)
        return path

    def _render(self, data: bytes) -> bytes:
        with Image.open(io.BytesIO(data)) as img:
            img.thumbnail((self.size, self.size))
            # JPEG 不支持透明通道和调色板
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            output = io.BytesIO()
            img.save(output, format="JPEG", quality=self.quality)
            return output.getvalue()
