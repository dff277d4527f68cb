"""Framework adapter: turns authorization decisions into HTTP outcomes.

Every endpoint that guards a single page, file or folder goes through ``authorize``
(directly or via the ``page_access`` / ``file_access`` dependencies):

    allowed                      → continue
    denied, anonymous principal  → redirect to the login page (303)
    denied, authenticated        → 403, never a redirect

Evaluation errors are caught here, logged with the resource id and
operation, and treated as denial. The decision engine is already fail-closed;
this layer applies the same rule to everything around it (snapshot loading,
visibility resolution).
"""

import logging
from enum import Enum
from typing import Callable, Optional

from fastapi import Depends, Path, Request
from sqlalchemy.orm import Session

from .access import Decision, Operation, Principal, ResourceKind
from .auth import optional_auth
from ..database import get_db
from ..exceptions import (
    ForbiddenError,
    LoginRequiredError,
    PageNotFoundError,
    StoredFileNotFoundError,
)
from ..models import Folder, Page, StoredFile
from ..repositories.file_repository import file_snapshot
from ..repositories.page_repository import page_snapshot
from ..services.access_service import AccessService
from ..services.permission_service import can_manage_folders, can_upload

logger = logging.getLogger(__name__)


class AuthorizationOutcome(str, Enum):
    ALLOW = "allow"
    LOGIN_REDIRECT = "login_redirect"
    FORBIDDEN = "forbidden"


def outcome_for(principal: Principal, decision: Decision) -> AuthorizationOutcome:
    """Map a decision onto what the client should see."""
    if decision.allowed:
        return AuthorizationOutcome.ALLOW
    if principal.is_effectively_authenticated:
        return AuthorizationOutcome.FORBIDDEN
    return AuthorizationOutcome.LOGIN_REDIRECT


def authorize(
    principal: Principal,
    evaluate: Callable[[], Decision],
    *,
    resource_id,
    operation: Operation,
    return_url: Optional[str] = None,
    resource_kind: Optional[ResourceKind] = None,
) -> None:
    """Run *evaluate* and enforce its decision.

    Args:
        principal: The acting identity.
        evaluate: Zero-argument callable producing the decision. Any
            exception it raises is logged and counts as a denial.
        resource_id: Resource id, for log records.
        operation: Requested operation, for log records.
        return_url: Where to send the user back after logging in.
        resource_kind: Page or file, for log records and the 403 message.

    Raises:
        LoginRequiredError: Denied and the principal is anonymous.
        ForbiddenError: Denied and the principal is authenticated.
    """
    op_name = getattr(operation, "value", operation)
    kind_name = resource_kind.value if resource_kind is not None else "resource"
    log_extra = {
        "resource_kind": kind_name,
        "resource_id": resource_id,
        "operation": op_name,
        "user": principal.display_name,
    }
    try:
        decision = evaluate()
    except Exception:
        logger.error("Error during authorization, denying access", exc_info=True, extra=log_extra)
        decision = Decision.deny("evaluation_error")

    outcome = outcome_for(principal, decision)
    if outcome is AuthorizationOutcome.ALLOW:
        logger.debug("Authorization succeeded (%s)", decision.reason, extra=log_extra)
        return

    logger.info("Authorization denied (%s)", decision.reason, extra={**log_extra, "outcome": outcome.value})
    if outcome is AuthorizationOutcome.LOGIN_REDIRECT:
        raise LoginRequiredError(return_url=return_url)
    raise ForbiddenError(f"You do not have permission to {str(op_name).replace('_', ' ')} this {kind_name}")


def _return_url(request: Request) -> str:
    url = request.url.path
    if request.url.query:
        url += f"?{request.url.query}"
    return url


# ---------------------------------------------------------------------------
# FastAPI dependencies, one per named policy
# ---------------------------------------------------------------------------

def page_access(operation: Operation) -> Callable[..., Page]:
    """Dependency factory guarding ``/{page_id}`` routes.

    A page that does not exist is a 404, not a denial, so anonymous users
    are not sent to log in for a page nobody could see. The row is projected
    into a snapshot inside the evaluation, so a malformed row is denied.
    """

    def dependency(
        request: Request,
        page_id: int = Path(..., ge=1),
        db: Session = Depends(get_db),
        principal: Principal = Depends(optional_auth),
    ) -> Page:
        service = AccessService(db)
        page = service.page_repo.get_by_id_optional(page_id)
        if page is None:
            raise PageNotFoundError(page_id)
        authorize(
            principal,
            lambda: service.decide(principal, page_snapshot(page), operation),
            resource_kind=ResourceKind.PAGE,
            resource_id=page_id,
            operation=operation,
            return_url=_return_url(request),
        )
        return page

    return dependency


def file_access(operation: Operation) -> Callable[..., StoredFile]:
    """Dependency factory guarding ``/{file_id}`` routes."""

    def dependency(
        request: Request,
        file_id: str = Path(..., min_length=1, max_length=36),
        db: Session = Depends(get_db),
        principal: Principal = Depends(optional_auth),
    ) -> StoredFile:
        service = AccessService(db)
        stored = service.file_repo.get_by_id_optional(file_id)
        if stored is None:
            raise StoredFileNotFoundError(file_id)
        authorize(
            principal,
            lambda: service.decide(principal, file_snapshot(stored), operation),
            resource_kind=ResourceKind.FILE,
            resource_id=file_id,
            operation=operation,
            return_url=_return_url(request),
        )
        return stored

    return dependency


def folder_view_access(
    request: Request,
    folder_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
) -> Folder:
    """Guard for folder listings: the folder's resolved visibility decides."""
    service = AccessService(db)
    folder = service.folder_repo.get_by_id(folder_id)
    authorize(
        principal,
        lambda: service.check_folder(principal, folder),
        resource_kind=ResourceKind.FOLDER,
        resource_id=folder_id,
        operation=Operation.VIEW,
        return_url=_return_url(request),
    )
    return folder


_COLLECTION_CHECKS = {
    Operation.UPLOAD: can_upload,
    Operation.MANAGE_FOLDERS: can_manage_folders,
}


def file_collection_access(operation: Operation) -> Callable[..., Principal]:
    """Dependency factory for file operations that target no existing file.

    Uploading and folder management are decided on role alone; the outcome
    mapping is the same as for single resources.
    """
    check = _COLLECTION_CHECKS[operation]

    def dependency(
        request: Request,
        principal: Principal = Depends(optional_auth),
    ) -> Principal:
        authorize(
            principal,
            lambda: Decision.allow("role") if check(principal) else Decision.deny("requires_editor"),
            resource_kind=ResourceKind.FILE,
            resource_id=None,
            operation=operation,
            return_url=_return_url(request),
        )
        return principal

    return dependency


CanViewPage = page_access(Operation.VIEW)
CanEditPage = page_access(Operation.EDIT)
CanDeletePage = page_access(Operation.DELETE)
CanViewFile = file_access(Operation.VIEW)
CanEditFile = file_access(Operation.EDIT)
CanDeleteFile = file_access(Operation.DELETE)
CanUploadFiles = file_collection_access(Operation.UPLOAD)
CanManageFolders = file_collection_access(Operation.MANAGE_FOLDERS)
CanViewFolder = folder_view_access
