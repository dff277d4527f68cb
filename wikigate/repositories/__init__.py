"""Data access repositories."""

from .base import BaseRepository
from .page_repository import PageRepository, page_snapshot
from .file_repository import FileRepository, file_snapshot
from .folder_repository import FolderRepository, folder_snapshot

__all__ = [
    "BaseRepository",
    "PageRepository",
    "page_snapshot",
    "FileRepository",
    "file_snapshot",
    "FolderRepository",
    "folder_snapshot",
]
