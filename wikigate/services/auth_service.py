"""Authentication service: user accounts and password hashing.

All password operations use bcrypt via passlib. Passwords are never stored
or logged in plaintext. Endpoints are thin wrappers around these functions.
"""

import logging
import uuid
from typing import Optional

from passlib.hash import bcrypt
from sqlalchemy.orm import Session

from ..exceptions import AuthenticationError, ValidationError
from ..models.user import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def register_user(
    db: Session,
    username: str,
    password: str,
    email: Optional[str] = None,
    is_editor: bool = False,
    is_admin: bool = False,
) -> User:
    """Create a new user account.

    The first account ever created becomes an admin, so a fresh install
    always has someone able to manage locked and deleted content.

    Raises ValidationError if the username is taken or inputs are invalid.
    """
    username = username.strip()
    if not username:
        raise ValidationError("Username required", field="username")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    if email is not None:
        email = email.strip().lower() or None
        if email is not None and "@" not in email:
            raise ValidationError("Valid email address required", field="email")

    if db.query(User).filter(User.username == username).first() is not None:
        raise ValidationError("Username already registered", field="username")

    is_first_user = db.query(User).count() == 0
    if is_first_user:
        is_admin = True

    user = User(
        user_id=uuid.uuid4().hex[:12],
        username=username,
        email=email,
        password_hash=bcrypt.hash(password),
        is_admin=is_admin,
        is_editor=is_admin or is_editor,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    if is_first_user:
        logger.info("First user registered as admin: %s", username)
    return user


def authenticate(db: Session, username: str, password: str) -> User:
    """Validate credentials and return the user.

    Raises AuthenticationError on unknown user, wrong password, or inactive account.
    The same message is used for the first two so usernames cannot be probed.
    """
    user = db.query(User).filter(User.username == username.strip()).first()

    if user is None or user.password_hash is None:
        raise AuthenticationError("Invalid username or password")

    if not bcrypt.verify(password, user.password_hash):
        raise AuthenticationError("Invalid username or password")

    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return user


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.user_id == user_id).first()


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.created_at, User.username).all()


def set_roles(db: Session, user_id: str, is_editor: bool, is_admin: bool) -> User:
    """Change a user's role flags. Admin always implies editor."""
    user = get_user_by_id(db, user_id)
    if user is None:
        raise ValidationError("User not found", field="user_id")
    user.is_admin = is_admin
    user.is_editor = is_admin or is_editor
    db.commit()
    db.refresh(user)
    logger.info("Roles changed", extra={"user_id": user_id, "roles": user.role_claims})
    return user


def deactivate_user(db: Session, user_id: str) -> User:
    user = get_user_by_id(db, user_id)
    if user is None:
        raise ValidationError("User not found", field="user_id")
    user.is_active = False
    db.commit()
    db.refresh(user)
    return user
