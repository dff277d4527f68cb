"""File and folder schemas."""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Dict

from ..core.access import Visibility


def _clean_folder_name(v: str) -> str:
    v = v.strip()
    if not v or '/' in v:
        raise ValueError("Folder name must be non-empty and cannot contain '/'")
    return v


class FolderCreate(BaseModel):
    """Schema for creating a folder."""
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[int] = None
    visibility: Visibility = Visibility.INHERIT

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_folder_name(v)


class FolderUpdate(BaseModel):
    """Rename a folder or change its visibility. Omitted fields are unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    visibility: Optional[Visibility] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_folder_name(v)


class FolderMove(BaseModel):
    """New parent for a folder; null moves it to the root."""
    parent_id: Optional[int] = None


class FileMove(BaseModel):
    """Target folder for a file; null moves it to the root."""
    folder_id: Optional[int] = None


class FolderResponse(BaseModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    visibility: Visibility

    class Config:
        from_attributes = True


class FileCreate(BaseModel):
    """Metadata for an uploaded file. The bytes go to the storage backend."""
    file_name: str = Field(..., min_length=1, max_length=255)
    folder_id: Optional[int] = None
    content_type: str = "application/octet-stream"
    file_size: int = Field(0, ge=0)
    visibility: Visibility = Visibility.INHERIT


class FileUpdate(BaseModel):
    file_name: Optional[str] = Field(None, max_length=255)
    visibility: Optional[Visibility] = None


class FileResponse(BaseModel):
    id: str
    file_name: str
    content_type: str
    file_size: int
    folder_id: Optional[int] = None
    visibility: Visibility
    is_deleted: bool
    uploaded_by: Optional[str] = None
    uploaded_on: Optional[datetime] = None

    class Config:
        from_attributes = True


class FolderListing(BaseModel):
    """Files visible to the caller, with what they may do to each."""
    folder_id: Optional[int] = None
    files: List[FileResponse]
    can_edit: Dict[str, bool]
    can_delete: Dict[str, bool]
    can_upload: bool
    can_manage_folders: bool
