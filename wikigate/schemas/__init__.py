"""Pydantic schemas for API validation."""

from .page import (
    PageCreate,
    PageUpdate,
    PageResponse,
    PageListItem,
    PagePermissionsResponse,
)
from .file import (
    FolderCreate,
    FolderUpdate,
    FolderMove,
    FolderResponse,
    FileCreate,
    FileUpdate,
    FileMove,
    FileResponse,
    FolderListing,
)
from .auth import (
    RegisterRequest,
    LoginRequest,
    RoleRequest,
    UserResponse,
    LoginResponse,
    MeResponse,
)

__all__ = [
    "PageCreate",
    "PageUpdate",
    "PageResponse",
    "PageListItem",
    "PagePermissionsResponse",
    "FolderCreate",
    "FolderUpdate",
    "FolderMove",
    "FolderResponse",
    "FileCreate",
    "FileUpdate",
    "FileMove",
    "FileResponse",
    "FolderListing",
    "RegisterRequest",
    "LoginRequest",
    "RoleRequest",
    "UserResponse",
    "LoginResponse",
    "MeResponse",
]
