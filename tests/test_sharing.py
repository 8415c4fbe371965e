"""
测试文件与文件夹共享
"""
import pytest

from filemanager.core.exceptions import FolderNotFoundError, StoredFileNotFoundError, ValidationError


async def test_share_grants_download(files, upload_text):
    """未共享时拒绝访问，共享后可以下载"""
    uploaded = await upload_text("u1")

    with pytest.raises(ValidationError):
        await files.download(uploaded.id, "u2")

    shares = await files.share_file_with_users(uploaded.id, "u1", ["u2"], "read")
    assert [s.sharedWithUserId for s in shares] == ["u2"]

    info = await files.download(uploaded.id, "u2")
    assert info.filePath == uploaded.filePath
    assert (await files.get_file(uploaded.id, "u1")).accessType == "shared"


async def test_share_skips_owner_and_duplicates(files, upload_text):
    uploaded = await upload_text("u1")
    shares = await files.share_file_with_users(uploaded.id, "u1", ["u1", "u2", "u2", "u3"], "read")
    assert [s.sharedWithUserId for s in shares] == ["u2", "u3"]


async def test_share_upsert_updates_access_level(files, upload_text):
    uploaded = await upload_text("u1")
    await files.share_file_with_users(uploaded.id, "u1", ["u2"], "read")
    await files.share_file_with_users(uploaded.id, "u1", ["u2"], "write")

    shares = await files.get_file_shares(uploaded.id, "u1")
    assert len(shares) == 1
    assert shares[0].accessLevel == "write"


async def test_share_validation(files, upload_text):
    uploaded = await upload_text("u1")

    with pytest.raises(ValidationError):
        await files.share_file_with_users(uploaded.id, "u1", [], "read")
    with pytest.raises(ValidationError):
        await files.share_file_with_users(uploaded.id, "u1", ["u2"], "admin")
    with pytest.raises(ValidationError):
        await files.share_file_with_users(uploaded.id, "u2", ["u3"], "read")
    with pytest.raises(StoredFileNotFoundError):
        await files.share_file_with_users("missing", "u1", ["u2"], "read")


async def test_write_share_does_not_allow_delete_or_rename(files, upload_text):
    uploaded = await upload_text("u1")
    await files.share_file_with_users(uploaded.id, "u1", ["u2"], "write")

    with pytest.raises(ValidationError):
        await files.rename(uploaded.id, "mine", "u2")
    with pytest.raises(ValidationError):
        await files.delete_file(uploaded.id, "u2")


async def test_revoke_file_share(files, upload_text):
    uploaded = await upload_text("u1")
    await files.share_file_with_users(uploaded.id, "u1", ["u2"], "read")
    await files.download(uploaded.id, "u2")

    assert await files.revoke_file_share(uploaded.id, "u1", "u2") is True
    assert await files.revoke_file_share(uploaded.id, "u1", "u2") is False

    with pytest.raises(ValidationError):
        await files.download(uploaded.id, "u2")
    assert (await files.get_file(uploaded.id, "u1")).accessType == "private"


async def test_files_shared_with_user(files, upload_text):
    uploaded = await upload_text("u1", name="plan.txt")
    await files.share_file_with_users(uploaded.id, "u1", ["u2"], "read")

    shared = await files.get_files_shared_with_user("u2")
    assert [f.originalName for f in shared] == ["plan.txt"]
    assert shared[0].accessLevel == "read"
    assert shared[0].sharedByUserId == "u1"
    assert await files.get_files_shared_with_user("u3") == []


async def test_folder_share_listed_for_recipient(folders):
    """共享文件夹出现在对方的共享列表中"""
    folder = await folders.create_folder("D", None, "u1")
    await folders.share_folder_with_users(folder.id, "u1", ["u2"], "write")

    shared = await folders.get_folders_shared_with_user("u2")
    assert [f.id for f in shared] == [folder.id]
    assert shared[0].accessLevel == "write"
    assert shared[0].sharedByUserId == "u1"
    assert shared[0].sharedAt is not None


async def test_folder_share_grants_file_access(files, folders, upload_text):
    folder = await folders.create_folder("Team", None, "u1")
    uploaded = await upload_text("u1", folder_id=folder.id)

    with pytest.raises(ValidationError):
        await files.download(uploaded.id, "u2")

    await folders.share_folder_with_users(folder.id, "u1", ["u2"], "read")
    await files.download(uploaded.id, "u2")
    assert [f.id for f in await files.list_files(folder.id, "u2")] == [uploaded.id]
    assert [f.id for f in await files.search_files("notes", "u2")] == [uploaded.id]


async def test_folder_share_requires_owner(folders):
    folder = await folders.create_folder("Team", None, "u1")
    await folders.share_folder_with_users(folder.id, "u1", ["u2"], "write")

    with pytest.raises(ValidationError):
        await folders.share_folder_with_users(folder.id, "u2", ["u3"], "write")
    with pytest.raises(ValidationError):
        await folders.update_folder(folder.id, "Renamed", "u2")
    with pytest.raises(ValidationError):
        await folders.delete_folder(folder.id, "u2")
    with pytest.raises(FolderNotFoundError):
        await folders.share_folder_with_users("missing", "u1", ["u2"], "write")


async def test_revoke_folder_share(folders):
    folder = await folders.create_folder("Team", None, "u1")
    await folders.share_folder_with_users(folder.id, "u1", ["u2", "u3"], "read")

    assert len(await folders.get_folder_shares(folder.id, "u1")) == 2
    assert await folders.revoke_folder_share(folder.id, "u1", "u2") is True

    assert await folders.get_folders_shared_with_user("u2") == []
    assert [s.sharedWithUserId for s in await folders.get_folder_shares(folder.id, "u1")] == ["u3"]


async def test_public_folder_exposes_files(files, folders, upload_text):
    folder = await folders.create_folder("Press", None, "u1")
    uploaded = await upload_text("u1", folder_id=folder.id)
    await folders.set_folder_public(folder.id, True, "u1")

    info = await files.download(uploaded.id, None)
    assert info.fileName == "notes.txt"
    assert [f.id for f in await files.list_files(folder.id, "u9")] == [uploaded.id]
