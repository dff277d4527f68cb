"""Database models."""

from .user import User
from .page import Page, Tag, page_tags
from .file import Folder, StoredFile

__all__ = ["User", "Page", "Tag", "page_tags", "Folder", "StoredFile"]
