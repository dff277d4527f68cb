"""Value types consumed by the authorization layer.

Everything here is immutable and framework-free: the identity layer builds a
``Principal`` once per request, repositories project rows into
``ResourceSnapshot`` values, and the decision engine turns the two plus an
``Operation`` into a ``Decision``. Nothing in this module touches the
database or the request.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional, Union

ResourceId = Union[int, str]


class Role(str, Enum):
    """Effective role of a principal. Admin is a superset of editor."""

    ADMIN = "Admin"
    EDITOR = "Editor"
    NONE = "None"


class Visibility(IntEnum):
    """Resource-level access scope. Values match the stored column."""

    INHERIT = 0
    PUBLIC = 1
    PRIVATE = 2

    @property
    def is_concrete(self) -> bool:
        return self is not Visibility.INHERIT


class ResourceKind(str, Enum):
    PAGE = "page"
    FILE = "file"
    # Folders are only ever viewed; changing them is a file-collection operation.
    FOLDER = "folder"


class Operation(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    UPLOAD = "upload"
    MANAGE_FOLDERS = "manage_folders"


@dataclass(frozen=True)
class Principal:
    """The identity acting on one request.

    ``is_admin`` implies ``is_editor``. A principal that claims to be
    authenticated without a user id is treated as anonymous, and an
    anonymous principal holds no role regardless of its flags.
    """

    user_id: Optional[str] = None
    username: Optional[str] = None
    is_authenticated: bool = False
    is_admin: bool = False
    is_editor: bool = False

    def __post_init__(self):
        if self.is_admin and not self.is_editor:
            object.__setattr__(self, "is_editor", True)

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls()

    @property
    def is_effectively_authenticated(self) -> bool:
        return self.is_authenticated and bool(self.user_id)

    @property
    def effective_role(self) -> Role:
        if not self.is_effectively_authenticated:
            return Role.NONE
        if self.is_admin:
            return Role.ADMIN
        if self.is_editor:
            return Role.EDITOR
        return Role.NONE

    @property
    def display_name(self) -> str:
        return self.username or "anonymous"


@dataclass(frozen=True)
class ResourceSnapshot:
    """Authorization-relevant projection of a page or file. Never the body."""

    kind: ResourceKind
    id: ResourceId
    visibility: Visibility = Visibility.INHERIT
    is_deleted: bool = False
    is_locked: bool = False
    folder_id: Optional[int] = None
    created_by: Optional[str] = None
    created_on: Optional[datetime] = None
    modified_by: Optional[str] = None
    modified_on: Optional[datetime] = None

    @classmethod
    def page(cls, id: int, **fields) -> "ResourceSnapshot":
        fields.pop("folder_id", None)
        return cls(kind=ResourceKind.PAGE, id=id, **fields)

    @classmethod
    def file(cls, id: str, **fields) -> "ResourceSnapshot":
        # Files cannot be locked.
        fields.pop("is_locked", None)
        return cls(kind=ResourceKind.FILE, id=id, **fields)

    @classmethod
    def folder(cls, id: int, **fields) -> "ResourceSnapshot":
        fields.pop("is_locked", None)
        fields.pop("folder_id", None)
        return cls(kind=ResourceKind.FOLDER, id=id, **fields)

    def with_visibility(self, visibility: Visibility) -> "ResourceSnapshot":
        return replace(self, visibility=visibility)


@dataclass(frozen=True)
class Decision:
    """Outcome of one authorization check.

    ``reason`` is a short code for log records only; callers branch on
    ``allowed`` (or on the truthiness of the decision).
    """

    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls, reason: str) -> "Decision":
        return cls(True, reason)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason)


# Deepest folder nesting followed when resolving inherited visibility.
MAX_FOLDER_DEPTH = 32


@dataclass(frozen=True)
class FolderNode:
    """The slice of a folder row needed for visibility inheritance."""

    id: int
    parent_id: Optional[int]
    visibility: Visibility = Visibility.INHERIT
