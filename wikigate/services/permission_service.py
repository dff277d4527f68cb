"""Permission checking: the decision engine.

This is the ONE place where access rules are defined. Every call site
(page view, edit, delete, tag listings, search, the file browser) funnels
through ``evaluate`` either directly or via the batch aggregator.

Design:
    - Roles: admin > editor > none (see ``Principal.effective_role``)
    - Operations are looked up in a table keyed by (resource kind, operation)
    - Precedence: missing resource, deleted, visibility (view only),
      locked (pages), role minimum
    - Ownership never grants anything beyond the role rules
    - Inherited visibility must be resolved before it gets here

The engine is pure: no I/O, no caching, no ambient request state.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.access import (
    Decision,
    Operation,
    Principal,
    ResourceKind,
    ResourceSnapshot,
    Role,
    Visibility,
)
from ..exceptions import UnsupportedOperationError

logger = logging.getLogger(__name__)

# (kind, operation) → minimum role. Role.NONE means "anyone the visibility
# rule lets through".
_MINIMUM_ROLE: dict[tuple[ResourceKind, Operation], Role] = {
    (ResourceKind.PAGE, Operation.VIEW): Role.NONE,
    (ResourceKind.PAGE, Operation.EDIT): Role.EDITOR,
    (ResourceKind.PAGE, Operation.DELETE): Role.ADMIN,
    (ResourceKind.FILE, Operation.VIEW): Role.NONE,
    (ResourceKind.FILE, Operation.EDIT): Role.EDITOR,
    (ResourceKind.FILE, Operation.DELETE): Role.ADMIN,
    (ResourceKind.FILE, Operation.UPLOAD): Role.EDITOR,
    (ResourceKind.FILE, Operation.MANAGE_FOLDERS): Role.EDITOR,
    (ResourceKind.FOLDER, Operation.VIEW): Role.NONE,
}

# Each role includes the roles below it.
_ROLE_RANK: dict[Role, int] = {Role.NONE: 0, Role.EDITOR: 1, Role.ADMIN: 2}

# Operations that change a resource; all are refused on deleted resources.
_MUTATING = frozenset({
    Operation.EDIT, Operation.DELETE, Operation.UPLOAD, Operation.MANAGE_FOLDERS,
})


def has_role(principal: Principal, minimum: Role) -> bool:
    """True if the principal's effective role is at least *minimum*."""
    return _ROLE_RANK[principal.effective_role] >= _ROLE_RANK[minimum]


def evaluate(
    principal: Principal,
    snapshot: Optional[ResourceSnapshot],
    operation: Operation,
) -> Decision:
    """Decide whether *principal* may perform *operation* on *snapshot*.

    Args:
        principal: The acting identity for this request.
        snapshot: The resource projection, or None if it could not be loaded.
        operation: The requested operation.

    Returns:
        A ``Decision``. Denial is a normal result, never an exception.

    Raises:
        UnsupportedOperationError: *operation* is not defined for the
            snapshot's resource kind. Use ``check_permission`` where a
            programmer error must still degrade to denial.
    """
    if snapshot is None:
        return Decision.deny("missing_resource")

    try:
        operation = Operation(operation)
    except ValueError:
        raise UnsupportedOperationError(str(operation), snapshot.kind.value) from None
    minimum = _MINIMUM_ROLE.get((snapshot.kind, operation))
    if minimum is None:
        raise UnsupportedOperationError(operation.value, snapshot.kind.value)

    if snapshot.is_deleted:
        if operation in _MUTATING:
            return Decision.deny("deleted")
        if principal.effective_role is Role.ADMIN:
            return Decision.allow("deleted_admin_view")
        return Decision.deny("deleted")

    if operation is Operation.VIEW:
        return _evaluate_visibility(principal, snapshot.visibility)

    if snapshot.is_locked and not has_role(principal, Role.ADMIN):
        return Decision.deny("locked")

    if not has_role(principal, minimum):
        return Decision.deny(f"requires_{minimum.value.lower()}")
    return Decision.allow(f"role_{principal.effective_role.value.lower()}")


def _evaluate_visibility(principal: Principal, visibility: Visibility) -> Decision:
    if visibility is Visibility.PUBLIC:
        return Decision.allow("public")
    if visibility is Visibility.PRIVATE:
        if principal.is_effectively_authenticated:
            return Decision.allow("private_authenticated")
        return Decision.deny("private_requires_login")
    return Decision.deny("unresolved_visibility")


def check_permission(
    principal: Principal,
    snapshot: Optional[ResourceSnapshot],
    operation: Operation,
) -> bool:
    """Fail-closed wrapper around ``evaluate``. Never raises.

    Any error, including an unsupported operation, is logged and turned
    into a denial.
    """
    try:
        decision = evaluate(principal, snapshot, operation)
    except Exception:
        logger.error(
            "Authorization evaluation failed, denying",
            exc_info=True,
            extra={
                "resource_id": getattr(snapshot, "id", None),
                "resource_kind": getattr(getattr(snapshot, "kind", None), "value", None),
                "operation": str(getattr(operation, "value", operation)),
            },
        )
        return False

    logger.debug(
        "Authorization %s for %s %s, operation: %s, user: %s (%s)",
        "granted" if decision.allowed else "denied",
        snapshot.kind.value if snapshot is not None else "resource",
        snapshot.id if snapshot is not None else None,
        getattr(operation, "value", operation),
        principal.display_name,
        decision.reason,
    )
    return decision.allowed


def can_upload(principal: Principal) -> bool:
    """Collection-level check: may this principal upload new files?"""
    return has_role(principal, _MINIMUM_ROLE[(ResourceKind.FILE, Operation.UPLOAD)])


def can_manage_folders(principal: Principal) -> bool:
    """Collection-level check: may this principal create, rename, move or delete folders?"""
    return has_role(principal, _MINIMUM_ROLE[(ResourceKind.FILE, Operation.MANAGE_FOLDERS)])
