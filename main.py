"""
文件管理核心 - 初始化入口（建表、创建存储目录、检查缓存）
"""
import asyncio

from filemanager.context import AppContext
from filemanager.core.exceptions import FileManagerError


async def bootstrap():
    """初始化数据表和存储目录，并输出运行状态"""
    context = await AppContext.create(init_tables=True)
    try:
        settings = context.settings
        stats = await context.cache.stats()

        print(f"✅ 数据表已就绪: {context.engine.url.render_as_string(hide_password=True)}")
        print(f"✅ 上传目录: {settings.UPLOAD_PATH}")
        print(f"✅ 缩略图目录: {settings.THUMBNAIL_PATH}")
        print(f"✅ 缓存模式: {stats['mode']} (已连接: {stats['connected']}, 缓存键: {stats['keys']})")
        print(f"✅ 上传大小上限: {settings.max_upload_bytes // (1024 * 1024)}MB")
    finally:
        await context.close()


if __name__ == "__main__":
    print("=" * 60)
    print("文件管理核心初始化")
    print("=" * 60)

    try:
        asyncio.run(bootstrap())
        print("\n🎉 初始化完成！")
    except FileManagerError as e:
        print(f"❌ 初始化失败 [{e.type.value}]: {e.message}")
        raise SystemExit(1)
