"""User model.

Users authenticate with username/password and receive JWT tokens whose role
claims become the request's ``Principal``. Roles are two flags rather than a
single column because an admin is always also an editor.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Text
from sqlalchemy.sql import func
from ..database import Base


class User(Base):
    """User account.

    Roles:
        admin  everything, including locked pages, deletes and recovery
        editor edit unlocked pages, upload and edit files, manage folders
        (none) authenticated reader: may view private resources
    """

    __tablename__ = "users"

    user_id = Column(String(50), primary_key=True)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    password_hash = Column(Text, nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_editor = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def role_claims(self) -> list[str]:
        """Role names carried in the session token."""
        roles = []
        if self.is_admin:
            roles.append("Admin")
        if self.is_admin or self.is_editor:
            roles.append("Editor")
        return roles
