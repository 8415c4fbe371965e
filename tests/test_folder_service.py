"""
测试文件夹管理服务
"""
import os

import pytest

from filemanager.core.exceptions import DatabaseError, ErrorType, FolderNotFoundError, ValidationError


async def test_create_folder_creates_directory(folders, settings):
    """创建文件夹时同时创建物理目录"""
    folder = await folders.create_folder("Reports", None, "u1")

    assert folder.name == "Reports"
    assert folder.parentId is None
    assert folder.ownerId == "u1"
    assert os.path.isdir(os.path.join(settings.UPLOAD_PATH, folder.id))


async def test_reports_tree(folders, upload_text):
    """文件夹树包含上传到文件夹中的文件"""
    reports = await folders.create_folder("Reports", None, "u1")
    await upload_text("u1", name="q1.txt", folder_id=reports.id)
    await upload_text("u1", name="q2.txt", folder_id=reports.id)

    tree = await folders.get_folder_tree(None, "u1")

    assert len(tree) == 1
    assert tree[0].name == "Reports"
    assert len(tree[0].files) == 2
    assert len(tree[0].subfolders) == 0


async def test_nested_tree(folders):
    root = await folders.create_folder("Projects", None, "u1")
    child = await folders.create_folder("2024", root.id, "u1")
    await folders.create_folder("Q1", child.id, "u1")
    await folders.create_folder("Other", None, "u2")

    tree = await folders.get_folder_tree(None, "u1")
    assert [n.name for n in tree] == ["Projects"]
    assert tree[0].subfolders[0].name == "2024"
    assert tree[0].subfolders[0].subfolders[0].name == "Q1"

    subtree = await folders.get_folder_tree(root.id, "u1")
    assert [n.name for n in subtree] == ["2024"]


async def test_tree_for_missing_parent(folders):
    with pytest.raises(FolderNotFoundError):
        await folders.get_folder_tree("missing", "u1")


@pytest.mark.parametrize("name", ["", "   ", "a/b", "bad:name", "what?", "x" * 256])
async def test_invalid_folder_names(folders, name):
    with pytest.raises(ValidationError) as exc_info:
        await folders.create_folder(name, None, "u1")
    assert exc_info.value.type == ErrorType.VALIDATION_ERROR


async def test_create_in_missing_parent(folders):
    with pytest.raises(FolderNotFoundError) as exc_info:
        await folders.create_folder("Child", "missing", "u1")
    assert exc_info.value.to_dict()["type"] == "FOLDER_NOT_FOUND"


async def test_duplicate_sibling_name_is_case_insensitive(folders):
    await folders.create_folder("Docs", None, "u1")
    with pytest.raises(ValidationError):
        await folders.create_folder("docs", None, "u1")

    # 其他用户可以使用相同名称
    other = await folders.create_folder("Docs", None, "u2")
    assert other.ownerId == "u2"


async def test_create_subfolder_requires_write_access(folders):
    parent = await folders.create_folder("Team", None, "u1")
    with pytest.raises(ValidationError):
        await folders.create_folder("Mine", parent.id, "u2")

    await folders.share_folder_with_users(parent.id, "u1", ["u2"], "write")
    child = await folders.create_folder("Mine", parent.id, "u2")
    assert child.parentId == parent.id


async def test_listings(folders):
    a = await folders.create_folder("A", None, "u1")
    await folders.create_folder("B", None, "u2")
    shared = await folders.create_folder("C", None, "u3")
    await folders.share_folder_with_users(shared.id, "u3", ["u1"], "read")

    assert {f.name for f in await folders.get_folders(None)} == {"A", "B", "C"}
    assert [f.id for f in await folders.get_folders_for_user(None, "u1")] == [a.id]
    assert {f.name for f in await folders.get_visible_folders(None, "u1")} == {"A", "C"}


async def test_update_folder_renames_metadata_only(folders, settings):
    folder = await folders.create_folder("Old", None, "u1")
    renamed = await folders.update_folder(folder.id, "New", "u1")

    assert renamed.name == "New"
    assert os.path.isdir(os.path.join(settings.UPLOAD_PATH, folder.id))

    with pytest.raises(ValidationError):
        await folders.update_folder(folder.id, "Hijacked", "u2")
    with pytest.raises(FolderNotFoundError):
        await folders.update_folder("missing", "Name", "u1")


async def test_delete_empty_folder(folders, settings):
    folder = await folders.create_folder("Temp", None, "u1")
    await folders.delete_folder(folder.id, "u1")

    assert not os.path.exists(os.path.join(settings.UPLOAD_PATH, folder.id))
    assert await folders.get_folders_for_user(None, "u1") == []
    with pytest.raises(FolderNotFoundError):
        await folders.delete_folder(folder.id, "u1")


async def test_delete_non_empty_folder_leaves_state_unchanged(folders, upload_text, settings):
    """非空文件夹删除失败时数据库和磁盘都不变"""
    parent = await folders.create_folder("Parent", None, "u1")
    child = await folders.create_folder("Child", parent.id, "u1")

    with pytest.raises(ValidationError):
        await folders.delete_folder(parent.id, "u1")
    assert os.path.isdir(os.path.join(settings.UPLOAD_PATH, parent.id))
    assert [f.id for f in await folders.get_folders(parent.id)] == [child.id]

    await upload_text("u1", folder_id=child.id)
    with pytest.raises(ValidationError):
        await folders.delete_folder(child.id, "u1")
    assert os.path.isdir(os.path.join(settings.UPLOAD_PATH, child.id))
    tree = await folders.get_folder_tree(parent.id, "u1")
    assert len(tree[0].files) == 1


async def test_delete_folder_requires_owner(folders):
    folder = await folders.create_folder("Private", None, "u1")
    with pytest.raises(ValidationError):
        await folders.delete_folder(folder.id, "u2")


async def test_delete_tolerates_missing_directory(folders, settings):
    folder = await folders.create_folder("Gone", None, "u1")
    os.rmdir(os.path.join(settings.UPLOAD_PATH, folder.id))

    await folders.delete_folder(folder.id)
    assert await folders.get_folders(None) == []


async def test_public_folder_inherited_by_children(folders):
    parent = await folders.create_folder("Public", None, "u1")
    updated = await folders.set_folder_public(parent.id, True, "u1")
    assert updated.isPublic is True

    child = await folders.create_folder("Inside", parent.id, "u1")
    assert child.isPublic is True
    assert {f.name for f in await folders.get_visible_folders(None, "u2")} == {"Public"}

    with pytest.raises(ValidationError):
        await folders.set_folder_public(parent.id, False, "u2")


async def test_empty_parent_id_means_root(folders):
    folder = await folders.create_folder("Top", "", "u1")
    assert folder.parentId is None

    assert [f.id for f in await folders.get_folders_for_user("", "u1")] == [folder.id]
    assert [f.id for f in await folders.get_visible_folders("", "u1")] == [folder.id]
    assert [node.id for node in await folders.get_folder_tree("", "u1")] == [folder.id]
    with pytest.raises(ValidationError):
        await folders.create_folder("Top", None, "u1")


async def test_root_folder_names_unique_in_database(context):
    """根目录的 parent_id 为 NULL，同名约束由部分唯一索引保证"""
    await context.folder_repository.create("root-a", "Archive", "u1")
    with pytest.raises(DatabaseError):
        await context.folder_repository.create("root-b", "Archive", "u1")

    # 其他用户和子目录中可以同名
    await context.folder_repository.create("root-c", "Archive", "u2")
    await context.folder_repository.create("child-a", "Archive", "u1", parent_id="root-a")
