"""Authentication request and response schemas."""

from pydantic import BaseModel, Field
from typing import Optional, List


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    email: Optional[str] = None
    is_editor: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [{"username": "alice", "password": "securepass", "is_editor": True}]
        }
    }


class LoginRequest(BaseModel):
    username: str
    password: str


class RoleRequest(BaseModel):
    is_editor: bool = False
    is_admin: bool = False


class UserResponse(BaseModel):
    user_id: str
    username: str
    email: Optional[str] = None
    roles: List[str] = []
    is_active: bool = True


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


class MeResponse(BaseModel):
    user_id: Optional[str] = None
    username: Optional[str] = None
    is_authenticated: bool
    role: str
