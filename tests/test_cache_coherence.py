"""
测试变更操作后缓存读取不返回旧数据
"""
import fakeredis
import pytest
from redis import asyncio as aioredis

from filemanager.cache import RedisCache
from filemanager.core.exceptions import StoredFileNotFoundError, ValidationError


async def test_reads_populate_cache(context, folders, upload_text):
    folder = await folders.create_folder("Docs", None, "u1")
    await upload_text("u1", folder_id=folder.id)

    await folders.get_folder_tree(None, "u1")
    await context.files.list_files(folder.id, "u1")

    keys = await context.cache.backend.keys("*")
    prefix = context.settings.CACHE_PREFIX
    assert f"{prefix}:folders-tree:user:u1:tree:root" in keys
    assert f"{prefix}:files:user:u1:list:{folder.id}" in keys


async def test_upload_invalidates_listing_and_tree(files, folders, upload_text):
    folder = await folders.create_folder("Docs", None, "u1")
    assert await files.list_files(folder.id, "u1") == []
    assert (await folders.get_folder_tree(None, "u1"))[0].files == []

    uploaded = await upload_text("u1", folder_id=folder.id)

    assert [f.id for f in await files.list_files(folder.id, "u1")] == [uploaded.id]
    assert [f.id for f in (await folders.get_folder_tree(None, "u1"))[0].files] == [uploaded.id]


async def test_folder_mutations_invalidate_listings(folders):
    assert await folders.get_folders_for_user(None, "u1") == []
    folder = await folders.create_folder("A", None, "u1")
    assert [f.name for f in await folders.get_folders_for_user(None, "u1")] == ["A"]

    await folders.update_folder(folder.id, "B", "u1")
    assert [f.name for f in await folders.get_folders_for_user(None, "u1")] == ["B"]
    assert [n.name for n in await folders.get_folder_tree(None, "u1")] == ["B"]

    await folders.delete_folder(folder.id, "u1")
    assert await folders.get_folders_for_user(None, "u1") == []
    assert await folders.get_folder_tree(None, "u1") == []


async def test_rename_and_delete_invalidate_file_reads(files, upload_text):
    uploaded = await upload_text("u1", name="old.txt")
    assert (await files.get_file(uploaded.id, "u1")).originalName == "old.txt"
    assert len(await files.search_files("old", "u1")) == 1

    await files.rename(uploaded.id, "new", "u1")
    assert (await files.get_file(uploaded.id, "u1")).originalName == "new.txt"
    assert await files.search_files("old", "u1") == []

    await files.delete_file(uploaded.id, "u1")
    with pytest.raises(StoredFileNotFoundError):
        await files.get_file(uploaded.id, "u1")
    assert await files.search_files("new", "u1") == []


async def test_share_and_revoke_invalidate_recipient(files, folders, upload_text):
    """共享与取消共享后，被共享用户的缓存立即更新"""
    folder = await folders.create_folder("D", None, "u1")
    uploaded = await upload_text("u1")

    assert await folders.get_folders_shared_with_user("u2") == []
    assert await files.get_files_shared_with_user("u2") == []

    await folders.share_folder_with_users(folder.id, "u1", ["u2"], "write")
    await files.share_file_with_users(uploaded.id, "u1", ["u2"], "read")

    assert [f.id for f in await folders.get_folders_shared_with_user("u2")] == [folder.id]
    assert [f.id for f in await files.get_files_shared_with_user("u2")] == [uploaded.id]
    assert (await files.get_file(uploaded.id, "u2")).id == uploaded.id

    await files.revoke_file_share(uploaded.id, "u1", "u2")
    assert await files.get_files_shared_with_user("u2") == []
    with pytest.raises(ValidationError):
        await files.get_file(uploaded.id, "u2")


async def test_move_invalidates_source_and_destination(files, folders, upload_text):
    source = await folders.create_folder("S", None, "u1")
    destination = await folders.create_folder("D", None, "u1")
    uploaded = await upload_text("u1", folder_id=source.id)

    assert len(await files.list_files(source.id, "u1")) == 1
    assert await files.list_files(destination.id, "u1") == []

    await files.move([uploaded.id], destination.id, "u1")

    assert await files.list_files(source.id, "u1") == []
    assert [f.id for f in await files.list_files(destination.id, "u1")] == [uploaded.id]


async def test_public_change_invalidates_every_user(files, folders, upload_text):
    folder = await folders.create_folder("Press", None, "u1")
    uploaded = await upload_text("u1", folder_id=folder.id)
    assert await files.list_files(folder.id, "u7") == []
    assert await files.list_files(folder.id, None) == []

    await folders.set_folder_public(folder.id, True, "u1")

    assert [f.id for f in await files.list_files(folder.id, "u7")] == [uploaded.id]
    assert [f.id for f in await files.list_files(folder.id, None)] == [uploaded.id]


async def test_redis_backend_keeps_caches_coherent(context, files, upload_text):
    context.cache.backend = RedisCache(
        fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    )
    await context.cache.backend.connect()

    assert await files.list_files(None, "u1") == []
    uploaded = await upload_text("u1")
    assert [f.id for f in await files.list_files(None, "u1")] == [uploaded.id]


async def test_cache_outage_does_not_fail_operations(context, files, folders, upload_text):
    """缓存不可用时操作照常完成"""
    context.cache.backend = RedisCache(
        aioredis.Redis(host="127.0.0.1", port=1, socket_connect_timeout=0.2, decode_responses=True)
    )

    folder = await folders.create_folder("Docs", None, "u1")
    uploaded = await upload_text("u1", folder_id=folder.id)
    assert [f.id for f in await files.list_files(folder.id, "u1")] == [uploaded.id]
    assert len(await folders.get_folder_tree(None, "u1")) == 1

    await files.delete_file(uploaded.id, "u1")
    assert await files.list_files(folder.id, "u1") == []
