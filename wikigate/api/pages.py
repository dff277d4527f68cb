"""Page API endpoints.

Single-page routes are guarded by the named-policy dependencies in
``core.authorization``; list routes filter through the access service so a
tag page with 200 entries costs a handful of queries, not 200.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List

from ..core.access import Operation, Principal, Role
from ..core.auth import optional_auth, require_admin, require_editor
from ..core.authorization import CanDeletePage, CanEditPage, CanViewPage
from ..database import get_db
from ..exceptions import ForbiddenError, ValidationError
from ..models import Page
from ..repositories.page_repository import PageRepository
from ..schemas.page import PageCreate, PageListItem, PagePermissionsResponse, PageResponse, PageUpdate
from ..services import AccessService, PageService

router = APIRouter(prefix="/api/pages", tags=["pages"])

_PAGE_OPERATIONS = (Operation.VIEW, Operation.EDIT, Operation.DELETE)
_MAX_PERMISSION_IDS = 500


def _parse_ids(raw: str) -> List[int]:
    try:
        ids = [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValidationError("ids must be a comma-separated list of integers", field="ids") from None
    if len(ids) > _MAX_PERMISSION_IDS:
        raise ValidationError(f"At most {_MAX_PERMISSION_IDS} ids per request", field="ids")
    return ids


@router.post("", response_model=PageResponse, status_code=201)
def create_page(
    body: PageCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_editor),
):
    """Create a page. Editors and admins only."""
    return PageService(db).create_page(principal, body.title, body.visibility, body.tags)


# --- Fixed-path endpoints (must be before /{page_id} to avoid route shadowing) ---


@router.get("", response_model=List[PageListItem])
def list_pages_by_tag(
    tag: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    """Pages carrying *tag* that the caller may view, ordered by title."""
    pages = PageRepository(db).list_by_tag(tag.strip().lower())
    return AccessService(db).visible_pages(principal, pages)


@router.get("/permissions", response_model=PagePermissionsResponse)
def page_permissions(
    ids: str = Query(..., description="Comma-separated page ids"),
    operation: Operation = Query(Operation.VIEW),
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    """``{page_id: allowed}`` for one operation. Unknown ids map to false."""
    if operation not in _PAGE_OPERATIONS:
        raise ValidationError(f"Operation {operation.value!r} does not apply to pages", field="operation")
    permissions = AccessService(db).check_pages(principal, _parse_ids(ids), operation)
    return PagePermissionsResponse(operation=operation.value, permissions=permissions)


# --- Single-page endpoints ---


@router.get("/{page_id}", response_model=PageResponse)
def get_page(page: Page = Depends(CanViewPage)):
    return page


@router.put("/{page_id}", response_model=PageResponse)
def update_page(
    body: PageUpdate,
    page: Page = Depends(CanEditPage),
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    """Update title, visibility or lock state. Locking and unlocking is admin-only."""
    if body.is_locked is not None and body.is_locked != page.is_locked and principal.effective_role is not Role.ADMIN:
        raise ForbiddenError("Only admins can lock or unlock pages")
    return PageService(db).update_page(
        principal, page.id, title=body.title, visibility=body.visibility, is_locked=body.is_locked
    )


@router.delete("/{page_id}", status_code=204)
def delete_page(
    page: Page = Depends(CanDeletePage),
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    """Soft delete. The page stays recoverable by admins."""
    PageService(db).soft_delete(principal, page.id)
    return Response(status_code=204)


@router.post("/{page_id}/restore", response_model=PageResponse)
def restore_page(
    page_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """Undo a soft delete. Admin only."""
    return PageService(db).restore(principal, page_id)
