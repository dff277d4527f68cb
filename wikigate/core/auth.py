"""Authentication module: builds the request's Principal.

Public interface:
    ``optional_auth``: always returns a Principal, never raises. Anonymous
                        when no valid token is present.
    ``require_auth`` : returns an authenticated Principal or raises 401.
    ``require_editor`` / ``require_admin``: raise 403 when the role is missing.

When ``settings.auth_enabled`` is False all dependencies return a fixed
development admin so the development workflow is unbroken.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .access import Principal, Role
from .config import settings
from .token_factory import TokenPayload, decode_token
from ..database import get_db
from ..exceptions import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

# Dev-mode identity: admin, so every rule can be exercised locally.
_DEV_ADMIN = Principal(
    user_id="dev-admin",
    username="dev-admin",
    is_authenticated=True,
    is_admin=True,
    is_editor=True,
)

_ANONYMOUS = Principal.anonymous()


def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> Principal:
    """Validate a token if present; anonymous otherwise. Never raises.

    The user row is re-read on every request so that deactivation and role
    changes take effect without waiting for token expiry.
    """
    if not settings.auth_enabled:
        return _DEV_ADMIN

    if credentials is None:
        return _ANONYMOUS

    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        return _ANONYMOUS

    return _load_principal(payload, db) or _ANONYMOUS


def require_auth(principal: Principal = Depends(optional_auth)) -> Principal:
    """Require an authenticated principal. Raises 401 otherwise."""
    if not principal.is_effectively_authenticated:
        raise AuthenticationError("Authentication required")
    return principal


def require_editor(principal: Principal = Depends(require_auth)) -> Principal:
    """Require editor (or admin) role. Raises 403 otherwise."""
    if principal.effective_role not in (Role.EDITOR, Role.ADMIN):
        raise ForbiddenError("Editor access required")
    return principal


def require_admin(principal: Principal = Depends(require_auth)) -> Principal:
    """Require admin role. Raises 403 otherwise."""
    if principal.effective_role is not Role.ADMIN:
        raise ForbiddenError("Admin access required")
    return principal


def _load_principal(payload: TokenPayload, db: Session) -> Optional[Principal]:
    """Build the principal from the current user row, or None if unusable."""
    from ..models.user import User

    user = db.query(User).filter(User.user_id == payload.sub).first()
    if user is None or not user.is_active:
        logger.info("Token presented for unknown or inactive user", extra={"user_id": payload.sub})
        return None

    return Principal(
        user_id=user.user_id,
        username=user.username,
        is_authenticated=True,
        is_admin=bool(user.is_admin),
        is_editor=bool(user.is_admin or user.is_editor),
    )
