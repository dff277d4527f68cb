"""File and folder operations used by the file browser endpoints.

Storage of the bytes themselves is handled by the storage backend; this
service only manages metadata. Authorization happens before these calls.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.access import MAX_FOLDER_DEPTH, Principal, Visibility
from ..exceptions import FolderNotFoundError, ValidationError
from ..models import Folder, StoredFile
from ..repositories.file_repository import FileRepository
from ..repositories.folder_repository import FolderRepository

logger = logging.getLogger(__name__)


class FileService:
    """Folder creation and file metadata lifecycle."""

    def __init__(self, db: Session):
        self.db = db
        self.files = FileRepository(db)
        self.folders = FolderRepository(db)

    def create_folder(
        self,
        principal: Principal,
        name: str,
        parent_id: Optional[int] = None,
        visibility: Visibility = Visibility.INHERIT,
    ) -> Folder:
        name = name.strip()
        if not name or "/" in name:
            raise ValidationError("Folder name must be non-empty and contain no '/'", field="name")
        if parent_id is not None:
            self._live_folder(parent_id)
        folder = self.folders.create(name, parent_id, visibility, created_by=principal.user_id)
        self.db.commit()
        return folder

    def register_upload(
        self,
        principal: Principal,
        file_name: str,
        folder_id: Optional[int] = None,
        content_type: str = "application/octet-stream",
        file_size: int = 0,
        visibility: Visibility = Visibility.INHERIT,
    ) -> StoredFile:
        file_name = file_name.strip()
        if not file_name:
            raise ValidationError("File name required", field="file_name")
        if file_size < 0:
            raise ValidationError("File size cannot be negative", field="file_size")
        if folder_id is not None:
            self._live_folder(folder_id)
        stored = self.files.create(
            file_name=file_name,
            folder_id=folder_id,
            content_type=content_type,
            file_size=file_size,
            visibility=visibility,
            uploaded_by=principal.user_id,
        )
        self.db.commit()
        logger.info("File registered", extra={"file_id": stored.id, "user_id": principal.user_id})
        return stored

    def update_file(
        self,
        principal: Principal,
        file_id: str,
        file_name: Optional[str] = None,
        visibility: Optional[Visibility] = None,
    ) -> StoredFile:
        stored = self.files.get_by_id(file_id)
        if file_name is not None and file_name.strip():
            stored.file_name = file_name.strip()
        if visibility is not None:
            stored.visibility = int(visibility)
        stored.modified_by = principal.user_id
        self.db.commit()
        self.db.refresh(stored)
        return stored

    def soft_delete(self, principal: Principal, file_id: str) -> StoredFile:
        stored = self.files.get_by_id(file_id)
        stored.is_deleted = True
        stored.modified_by = principal.user_id
        self.db.commit()
        logger.info("File deleted", extra={"file_id": file_id, "user_id": principal.user_id})
        return stored

    # ------------------------------------------------------------------
    # Folder management
    # ------------------------------------------------------------------

    def _live_folder(self, folder_id: int) -> Folder:
        folder = self.folders.get_by_id(folder_id)
        if folder.is_deleted:
            raise FolderNotFoundError(folder_id)
        return folder

    def update_folder(
        self,
        principal: Principal,
        folder_id: int,
        name: Optional[str] = None,
        visibility: Optional[Visibility] = None,
    ) -> Folder:
        """Rename a folder or change its visibility.

        A visibility change reaches every Inherit file and folder below it.
        """
        folder = self._live_folder(folder_id)
        if name is not None:
            name = name.strip()
            if not name or "/" in name:
                raise ValidationError("Folder name must be non-empty and contain no '/'", field="name")
            folder.name = name
        if visibility is not None:
            folder.visibility = int(visibility)
        self.db.commit()
        self.db.refresh(folder)
        logger.info("Folder updated", extra={"folder_id": folder_id, "user_id": principal.user_id})
        return folder

    def move_folder(self, principal: Principal, folder_id: int, new_parent_id: Optional[int]) -> Folder:
        """Move a folder under *new_parent_id*, or to the root when None."""
        folder = self._live_folder(folder_id)
        if new_parent_id is not None:
            self._live_folder(new_parent_id)
            parent_chain = self.folders.ancestor_ids(new_parent_id)
            if folder_id in parent_chain:
                raise ValidationError("Cannot move folder into its own descendant", field="parent_id")
            depth = len(parent_chain) + 1 + len(self.folders.subtree_levels(folder_id))
            if depth > MAX_FOLDER_DEPTH:
                raise ValidationError(
                    f"Folders cannot be nested more than {MAX_FOLDER_DEPTH} levels deep", field="parent_id"
                )
        folder.parent_id = new_parent_id
        self.db.commit()
        self.db.refresh(folder)
        logger.info(
            "Folder moved",
            extra={"folder_id": folder_id, "parent_id": new_parent_id, "user_id": principal.user_id},
        )
        return folder

    def delete_folder(self, principal: Principal, folder_id: int, recursive: bool = False) -> None:
        """Soft delete a folder.

        Without *recursive* the folder must be empty. With it, every live
        subfolder and file below is soft deleted as well.
        """
        folder = self._live_folder(folder_id)
        descendants = [fid for level in self.folders.subtree_levels(folder_id) for fid in level]
        files = self.files.live_in_folders([folder_id] + descendants)
        if (descendants or files) and not recursive:
            raise ValidationError("Folder is not empty; pass recursive=true to delete its contents", field="recursive")

        for stored in files:
            stored.is_deleted = True
            stored.modified_by = principal.user_id
        for child in self.folders.get_many(descendants):
            child.is_deleted = True
        folder.is_deleted = True
        self.db.commit()
        logger.info(
            "Folder deleted",
            extra={
                "folder_id": folder_id,
                "folders": len(descendants) + 1,
                "files": len(files),
                "user_id": principal.user_id,
            },
        )

    def move_file(self, principal: Principal, file_id: str, folder_id: Optional[int]) -> StoredFile:
        """Move a file into *folder_id*, or to the root when None."""
        stored = self.files.get_by_id(file_id)
        if folder_id is not None:
            self._live_folder(folder_id)
        stored.folder_id = folder_id
        stored.modified_by = principal.user_id
        self.db.commit()
        self.db.refresh(stored)
        return stored
