from .folder import Folder
from .file import File
from .share import FileShare, FolderShare

__all__ = [
    "Folder",
    "File",
    "FileShare",
    "FolderShare"
]
