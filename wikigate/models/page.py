"""Page and tag models.

Only the columns the authorization layer and list views need are modelled
here; page bodies, revisions and rendering live elsewhere.
"""

from sqlalchemy import Column, Index, Integer, String, Boolean, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base

page_tags = Table(
    "page_tags",
    Base.metadata,
    Column("page_id", Integer, ForeignKey("pages.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Page(Base):
    """Wiki page metadata."""

    __tablename__ = "pages"
    __table_args__ = (
        Index("ix_pages_slug", "slug"),
        Index("ix_pages_is_deleted", "is_deleted"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)

    is_locked = Column(Boolean, nullable=False, default=False)
    # Soft delete: the row stays so admins can view and restore it.
    is_deleted = Column(Boolean, nullable=False, default=False)
    # Stored as Visibility int value; 0 = Inherit (default)
    visibility = Column(Integer, nullable=False, default=0)

    created_by = Column(String(50), nullable=True)
    created_on = Column(DateTime(timezone=True), server_default=func.now())
    modified_by = Column(String(50), nullable=True)
    modified_on = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tags = relationship("Tag", secondary=page_tags, back_populates="pages")


class Tag(Base):
    """Free-form page tag."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)

    pages = relationship("Page", secondary=page_tags, back_populates="tags")
