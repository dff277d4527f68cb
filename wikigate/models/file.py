"""Folder and stored-file models.

Folders form a tree through ``parent_id`` and carry their own visibility, so
a file marked Inherit takes the visibility of its nearest folder that sets
one.
"""

from sqlalchemy import Column, Index, Integer, String, Boolean, DateTime, ForeignKey, BigInteger
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class Folder(Base):
    """Folder in the file tree."""

    __tablename__ = "folders"
    __table_args__ = (
        Index("ix_folders_parent_id", "parent_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    parent_id = Column(Integer, ForeignKey("folders.id"), nullable=True)
    visibility = Column(Integer, nullable=False, default=0)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_by = Column(String(50), nullable=True)
    created_on = Column(DateTime(timezone=True), server_default=func.now())

    files = relationship("StoredFile", back_populates="folder")


class StoredFile(Base):
    """Uploaded file metadata. Content lives in the storage backend."""

    __tablename__ = "files"
    __table_args__ = (
        Index("ix_files_folder_id", "folder_id"),
    )

    id = Column(String(36), primary_key=True)  # UUID4 string
    file_name = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=False, default="application/octet-stream")
    file_size = Column(BigInteger, nullable=False, default=0)
    folder_id = Column(Integer, ForeignKey("folders.id"), nullable=True)

    visibility = Column(Integer, nullable=False, default=0)
    is_deleted = Column(Boolean, nullable=False, default=False)

    uploaded_by = Column(String(50), nullable=True)
    uploaded_on = Column(DateTime(timezone=True), server_default=func.now())
    modified_by = Column(String(50), nullable=True)
    modified_on = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    folder = relationship("Folder", back_populates="files")
