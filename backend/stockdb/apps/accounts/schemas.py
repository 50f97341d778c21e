# backend/stockdb/apps/accounts/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .models import Role


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class UserBase(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.VIEWER

    @field_validator("username", "name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class UserCreate(UserBase):
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[Role] = None
    password: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "password")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v


class UserRead(BaseModel):
    id: str
    username: str
    name: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------


class PermissionsRead(BaseModel):
    can_add: bool
    can_edit: bool
    can_delete: bool
    can_manage_users: bool


class LoginRequest(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead
    permissions: PermissionsRead


class SessionRead(BaseModel):
    user: UserRead
    permissions: PermissionsRead
