"""Authentication and user management API endpoints.

Public endpoints:
    POST /api/auth/register  create account (open for first user, admin-only after)
    POST /api/auth/login     authenticate and receive JWT
    GET  /api/auth/me        the principal this request runs as
    GET  /account/login      login entry point; denied anonymous requests land here

Admin-only endpoints:
    GET /api/auth/users                      list all users
    PUT /api/auth/users/{user_id}/roles      change role flags
    PUT /api/auth/users/{user_id}/deactivate deactivate account
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.access import Principal, Role
from ..core.auth import optional_auth, require_admin
from ..core.config import settings
from ..core.token_factory import create_token
from ..database import get_db
from ..exceptions import ForbiddenError
from ..models.user import User
from ..schemas.auth import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    RegisterRequest,
    RoleRequest,
    UserResponse,
)
from ..services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])
login_router = APIRouter(tags=["Authentication"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        user_id=user.user_id,
        username=user.username,
        email=user.email,
        roles=user.role_claims,
        is_active=user.is_active,
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    summary="Register a new user",
    description="First registration is open (creates admin). After that, admin auth required.",
)
def register_user(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(optional_auth),
):
    if db.query(User).count() > 0 and principal.effective_role is not Role.ADMIN:
        raise ForbiddenError("Only admins can register new users")

    user = auth_service.register_user(
        db, body.username, body.password, email=body.email, is_editor=body.is_editor
    )
    return _user_response(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate and receive JWT",
)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = auth_service.authenticate(db, body.username, body.password)
    token = create_token(
        subject=user.user_id,
        roles=user.role_claims,
        secret=settings.jwt_secret_key,
        username=user.username,
        algorithm=settings.jwt_algorithm,
        expires_hours=settings.token_expire_hours,
    )
    logger.info("User logged in", extra={"user_id": user.user_id})
    return LoginResponse(token=token, user=_user_response(user))


@router.get(
    "/me",
    response_model=MeResponse,
    summary="The principal this request is evaluated as",
)
def get_me(principal: Principal = Depends(optional_auth)):
    return MeResponse(
        user_id=principal.user_id,
        username=principal.username,
        is_authenticated=principal.is_effectively_authenticated,
        role=principal.effective_role.value,
    )


@router.get(
    "/users",
    response_model=List[UserResponse],
    summary="List all users (admin only)",
)
def list_users(
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [_user_response(u) for u in auth_service.list_users(db)]


@router.put(
    "/users/{user_id}/roles",
    response_model=UserResponse,
    summary="Change a user's role flags (admin only)",
)
def update_roles(
    user_id: str,
    body: RoleRequest,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _user_response(auth_service.set_roles(db, user_id, body.is_editor, body.is_admin))


@router.put(
    "/users/{user_id}/deactivate",
    response_model=UserResponse,
    summary="Deactivate a user account (admin only)",
)
def deactivate(
    user_id: str,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _user_response(auth_service.deactivate_user(db, user_id))


@login_router.get(settings.login_path, summary="Login entry point")
def login_entry(return_url: Optional[str] = Query(None)):
    """Where anonymous users are sent after a denied request.

    Clients render their own login form and POST to ``/api/auth/login``,
    then navigate back to ``return_url``.
    """
    if not return_url or not return_url.startswith("/") or return_url.startswith("//"):
        return_url = "/"
    return {"login_endpoint": "/api/auth/login", "method": "POST", "return_url": return_url}
