"""Authentication schemas."""

from pydantic import BaseModel, Field

from cafestock.core.rbac import UserRole
from cafestock.schemas.user import UserResponse


class SigninRequest(BaseModel):
    """Sign-in request body."""

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=128)
    role: UserRole


class Token(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse
