"""Page schemas."""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Dict

from ..core.access import Visibility


class PageCreate(BaseModel):
    """Schema for creating a page."""
    title: str = Field(..., min_length=1, max_length=255)
    visibility: Visibility = Visibility.INHERIT
    tags: List[str] = []

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be blank")
        return v

    model_config = {
        "json_schema_extra": {
            "examples": [{"title": "Release Checklist", "visibility": 2, "tags": ["ops"]}]
        }
    }


class PageUpdate(BaseModel):
    """Schema for updating page metadata. Omitted fields are left unchanged."""
    title: Optional[str] = Field(None, max_length=255)
    visibility: Optional[Visibility] = None
    is_locked: Optional[bool] = None


class PageResponse(BaseModel):
    """Schema for page response."""
    id: int
    title: str
    slug: str
    visibility: Visibility
    is_locked: bool
    is_deleted: bool
    tags: List[str] = []
    created_by: Optional[str] = None
    created_on: Optional[datetime] = None
    modified_by: Optional[str] = None
    modified_on: Optional[datetime] = None

    @field_validator('tags', mode='before')
    @classmethod
    def tag_names(cls, v):
        return [t if isinstance(t, str) else t.name for t in (v or [])]

    class Config:
        from_attributes = True


class PageListItem(BaseModel):
    """Compact page entry for tag listings and search results."""
    id: int
    title: str
    slug: str

    class Config:
        from_attributes = True


class PagePermissionsResponse(BaseModel):
    """Per-page answer for one operation, for list UIs."""
    operation: str
    permissions: Dict[int, bool]
