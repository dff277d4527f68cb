"""Stored-file repository."""

import uuid
from typing import List, Optional

from ..core.access import ResourceSnapshot, Visibility
from ..exceptions import StoredFileNotFoundError
from ..models import StoredFile
from .base import BaseRepository


def file_snapshot(stored: StoredFile) -> ResourceSnapshot:
    """Project a file row into the authorization snapshot."""
    return ResourceSnapshot.file(
        stored.id,
        visibility=Visibility(stored.visibility or 0),
        is_deleted=bool(stored.is_deleted),
        folder_id=stored.folder_id,
        created_by=stored.uploaded_by,
        created_on=stored.uploaded_on,
        modified_by=stored.modified_by,
        modified_on=stored.modified_on,
    )


class FileRepository(BaseRepository[StoredFile]):
    """Data access for file metadata. Reads include soft-deleted files."""

    model_class = StoredFile
    not_found_error = StoredFileNotFoundError

    def create(
        self,
        file_name: str,
        folder_id: Optional[int] = None,
        content_type: str = "application/octet-stream",
        file_size: int = 0,
        visibility: Visibility = Visibility.INHERIT,
        uploaded_by: Optional[str] = None,
    ) -> StoredFile:
        stored = StoredFile(
            id=str(uuid.uuid4()),
            file_name=file_name,
            folder_id=folder_id,
            content_type=content_type,
            file_size=file_size,
            visibility=int(visibility),
            uploaded_by=uploaded_by,
            modified_by=uploaded_by,
        )
        self.db.add(stored)
        self.db.flush()
        self.db.refresh(stored)
        return stored

    def get_snapshot(self, file_id: str) -> Optional[ResourceSnapshot]:
        stored = self.get_by_id_optional(file_id)
        return file_snapshot(stored) if stored is not None else None

    def list_in_folder(self, folder_id: Optional[int], include_deleted: bool = False) -> List[StoredFile]:
        query = self.db.query(StoredFile)
        if folder_id is None:
            query = query.filter(StoredFile.folder_id.is_(None))
        else:
            query = query.filter(StoredFile.folder_id == folder_id)
        if not include_deleted:
            query = query.filter(StoredFile.is_deleted.is_(False))
        return query.order_by(StoredFile.file_name).all()

    def live_in_folders(self, folder_ids: List[int]) -> List[StoredFile]:
        if not folder_ids:
            return []
        return (
            self.db.query(StoredFile)
            .filter(StoredFile.folder_id.in_(folder_ids), StoredFile.is_deleted.is_(False))
            .all()
        )
