from .share import AccessLevel, ShareResponse
from .file import AccessType, UploadMetadata, FileResponse, SharedFileResponse, DownloadInfo, MoveResult
from .folder import FolderResponse, FolderTreeNode, SharedFolderResponse

__all__ = [
    "AccessLevel",
    "ShareResponse",
    "AccessType",
    "UploadMetadata",
    "FileResponse",
    "SharedFileResponse",
    "DownloadInfo",
    "MoveResult",
    "FolderResponse",
    "FolderTreeNode",
    "SharedFolderResponse"
]
