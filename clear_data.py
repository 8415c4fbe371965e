"""
清空文件管理相关的所有数据（共享记录、文件、文件夹）并清空缓存
"""
import asyncio

from sqlalchemy import delete, func, select

from filemanager.context import AppContext
from filemanager.models import File, FileShare, Folder, FolderShare


async def clear_all_data():
    """按依赖顺序清空数据表，磁盘文件保留"""
    context = await AppContext.create()
    try:
        async with context.session_factory() as session:
            print("开始清空数据...")

            # 先删除依赖表，后删除被依赖表
            tables = [
                (FileShare, '文件共享'),
                (FolderShare, '文件夹共享'),
                (File, '文件'),
            ]

            total_deleted = 0

            for model, table_desc in tables:
                count = (await session.execute(select(func.count()).select_from(model))).scalar()

                if count > 0:
                    await session.execute(delete(model))
                    await session.commit()
                    print(f"✅ 清空 {table_desc} 表: 删除了 {count} 条记录")
                    total_deleted += count
                else:
                    print(f"⚪ {table_desc} 表: 已经是空的")

            # 文件夹有自引用外键，从叶子节点开始逐层删除
            folder_count = 0
            while True:
                parent_ids = select(Folder.parent_id).where(Folder.parent_id.is_not(None))
                result = await session.execute(delete(Folder).where(Folder.id.not_in(parent_ids)))
                await session.commit()
                if result.rowcount == 0:
                    break
                folder_count += result.rowcount
            print(f"✅ 清空 文件夹 表: 删除了 {folder_count} 条记录")
            total_deleted += folder_count

            print(f"\n总计删除了 {total_deleted} 条记录")

        flushed = await context.cache.backend.flush()
        print(f"\n{'✅' if flushed else '❌'} 清空缓存 ({context.cache_mode.value})")
        print("\n🎉 数据清空完成！")
    finally:
        await context.close()


if __name__ == "__main__":
    print("=" * 60)
    print("清空文件管理数据")
    print("=" * 60)

    print("\n⚠️  警告: 此操作将删除以下表的所有数据:")
    print("  - file_shares (文件共享)")
    print("  - folder_shares (文件夹共享)")
    print("  - files (文件)")
    print("  - folders (文件夹)")
    print("\n上传目录中的文件不会被删除\n")

    confirm = input("确认执行此操作? (输入 'yes' 确认): ")

    if confirm.lower() == 'yes':
        asyncio.run(clear_all_data())
    else:
        print("\n❌ 操作已取消")
