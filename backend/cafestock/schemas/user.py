"""User schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from cafestock.core.rbac import UserRole


class BaristaCreate(BaseModel):
    """Barista creation schema (manager or public sign-up)."""

    username: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, max_length=128)


class PasswordChange(BaseModel):
    current_password: Optional[str] = Field(None, max_length=128)
    new_password: Optional[str] = Field(None, max_length=128)


class PasswordReset(BaseModel):
    new_password: Optional[str] = Field(None, max_length=128)


class UsernameChange(BaseModel):
    username: Optional[str] = Field(None, max_length=100)


class UserResponse(BaseModel):
    """User response schema."""

    id: int
    username: str
    role: UserRole
    created_at: datetime
    last_login_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BaristaCount(BaseModel):
    count: int
