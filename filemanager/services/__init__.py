from .access_service import AccessPolicy
from .thumbnail_service import ThumbnailService
from .folder_service import FolderService
from .file_service import FileService

__all__ = [
    "AccessPolicy",
    "ThumbnailService",
    "FolderService",
    "FileService"
]
