from .folder_repository import FolderRepository
from .file_repository import FileRepository
from .share_repository import FileShareRepository, FolderShareRepository

__all__ = [
    "FolderRepository",
    "FileRepository",
    "FileShareRepository",
    "FolderShareRepository"
]
