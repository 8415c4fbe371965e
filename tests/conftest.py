"""
测试夹具：每个测试使用独立的临时目录和 SQLite 数据库
"""
import io

import pytest
from PIL import Image

from filemanager.context import AppContext
from filemanager.core.config import Settings
from filemanager.schemas.file import UploadMetadata


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        DB_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        UPLOAD_PATH=str(tmp_path / "uploads"),
        THUMBNAIL_PATH=str(tmp_path / "thumbnails"),
        REDIS_ENABLED=False,
        LOG_LEVEL="DEBUG",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
async def context(settings):
    ctx = await AppContext.create(settings, init_tables=True)
    yield ctx
    await ctx.close()


@pytest.fixture
def folders(context):
    return context.folders


@pytest.fixture
def files(context):
    return context.files


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGBA", (640, 480), (200, 30, 30, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def upload_text(files):
    """上传一个文本文件"""
    async def _upload(owner_id, name="notes.txt", content=b"hello world", folder_id=None):
        metadata = UploadMetadata(originalName=name, mimeType="text/plain")
        return await files.upload(content, metadata, owner_id, folder_id)
    return _upload


@pytest.fixture
async def make_context(tmp_path):
    """按覆盖配置创建独立的上下文"""
    created = []

    async def _make(name="custom", **overrides):
        ctx = await AppContext.create(make_settings(tmp_path / name, **overrides), init_tables=True)
        created.append(ctx)
        return ctx

    yield _make
    for ctx in created:
        await ctx.close()
