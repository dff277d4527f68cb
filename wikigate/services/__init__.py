"""Business logic services."""

from .access_service import AccessService
from .page_service import PageService
from .file_service import FileService

__all__ = ["AccessService", "PageService", "FileService"]
