"""File browser and folder API endpoints.

The folder listing is the heaviest authorization consumer in the app: it
decides view, edit and delete for every file in a folder. All three go
through the batch aggregator over rows loaded once, with one shared
folder-ancestry load for inherited visibility.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import Optional

from ..core.access import Operation, Principal
from ..core.auth import optional_auth
from ..core.authorization import (
    CanDeleteFile,
    CanEditFile,
    CanManageFolders,
    CanUploadFiles,
    CanViewFile,
    CanViewFolder,
)
from ..database import get_db
from ..models import Folder, StoredFile
from ..repositories.file_repository import FileRepository
from ..schemas.file import (
    FileCreate,
    FileMove,
    FileResponse,
    FileUpdate,
    FolderCreate,
    FolderListing,
    FolderMove,
    FolderResponse,
    FolderUpdate,
)
from ..services import AccessService, FileService
from ..services.permission_service import can_manage_folders, can_upload

router = APIRouter(prefix="/api", tags=["files"])


def _listing(db: Session, principal: Principal, folder_id: Optional[int]) -> FolderListing:
    access = AccessService(db)
    rows = FileRepository(db).list_in_folder(folder_id)
    resolver = access.files_resolver(rows)
    visible = access.visible_files(principal, rows, resolver)
    return FolderListing(
        folder_id=folder_id,
        files=[FileResponse.model_validate(f) for f in visible],
        can_edit=access.file_permissions(principal, visible, Operation.EDIT, resolver),
        can_delete=access.file_permissions(principal, visible, Operation.DELETE, resolver),
        can_upload=can_upload(principal),
        can_manage_folders=can_manage_folders(principal),
    )


# --- Folders ---


@router.get("/folders/root/files", response_model=FolderListing)
def list_root_files(
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    """Files that sit outside any folder."""
    return _listing(db, principal, None)


@router.get("/folders/{folder_id}/files", response_model=FolderListing)
def list_folder_files(
    folder: Folder = Depends(CanViewFolder),
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    """Files in a folder the caller may view, with per-file edit/delete flags.

    The folder itself must be visible: anonymous callers are sent to log in
    rather than shown an empty private folder.
    """
    return _listing(db, principal, folder.id)


@router.post("/folders", response_model=FolderResponse, status_code=201)
def create_folder(
    body: FolderCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(CanManageFolders),
):
    return FileService(db).create_folder(principal, body.name, body.parent_id, body.visibility)


@router.put("/folders/{folder_id}", response_model=FolderResponse)
def update_folder(
    folder_id: int,
    body: FolderUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(CanManageFolders),
):
    """Rename a folder or change the visibility its Inherit contents follow."""
    return FileService(db).update_folder(principal, folder_id, body.name, body.visibility)


@router.put("/folders/{folder_id}/move", response_model=FolderResponse)
def move_folder(
    folder_id: int,
    body: FolderMove,
    db: Session = Depends(get_db),
    principal: Principal = Depends(CanManageFolders),
):
    return FileService(db).move_folder(principal, folder_id, body.parent_id)


@router.delete("/folders/{folder_id}", status_code=204)
def delete_folder(
    folder_id: int,
    recursive: bool = Query(False),
    db: Session = Depends(get_db),
    principal: Principal = Depends(CanManageFolders),
):
    """Soft delete a folder. Non-empty folders need ``recursive=true``."""
    FileService(db).delete_folder(principal, folder_id, recursive=recursive)
    return Response(status_code=204)


# --- Files ---


@router.post("/files", response_model=FileResponse, status_code=201)
def upload_file(
    body: FileCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(CanUploadFiles),
):
    """Register an uploaded file's metadata."""
    return FileService(db).register_upload(
        principal,
        body.file_name,
        folder_id=body.folder_id,
        content_type=body.content_type,
        file_size=body.file_size,
        visibility=body.visibility,
    )


@router.get("/files/{file_id}", response_model=FileResponse)
def get_file(stored: StoredFile = Depends(CanViewFile)):
    return stored


@router.put("/files/{file_id}", response_model=FileResponse)
def update_file(
    body: FileUpdate,
    stored: StoredFile = Depends(CanEditFile),
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    return FileService(db).update_file(principal, stored.id, body.file_name, body.visibility)


@router.put("/files/{file_id}/move", response_model=FileResponse)
def move_file(
    body: FileMove,
    stored: StoredFile = Depends(CanEditFile),
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    """Move a file to another folder. An Inherit file takes on its new folder's visibility."""
    return FileService(db).move_file(principal, stored.id, body.folder_id)


@router.delete("/files/{file_id}", status_code=204)
def delete_file(
    stored: StoredFile = Depends(CanDeleteFile),
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    FileService(db).soft_delete(principal, stored.id)
    return Response(status_code=204)
