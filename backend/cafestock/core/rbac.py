"""Role-Based Access Control (RBAC) utilities."""

from enum import Enum
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from cafestock.core.exceptions import ForbiddenError
from cafestock.core.security import decode_access_token
from cafestock.db.session import DbSession


class UserRole(str, Enum):
    """User roles for RBAC."""

    MANAGER = "manager"
    BARISTA = "barista"


class Actor:
    """The authenticated caller, passed explicitly into every core operation.

    Attributes:
        user_id: The user's database ID, or None for the system actor used
            by background jobs.
        username: The user's login name.
        role: The user's role (manager/barista).
    """

    def __init__(self, user_id: int | None, username: str, role: UserRole):
        self.user_id = user_id
        self.username = username
        self.role = role

    @classmethod
    def system(cls) -> "Actor":
        return cls(user_id=None, username="system", role=UserRole.MANAGER)

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER

    def require_manager(self, action: str = "perform this action") -> None:
        """Raise ForbiddenError unless the actor holds the manager role."""
        if not self.is_manager:
            raise ForbiddenError(f"Manager access required to {action}")

    def require_self(self, user_id: int, action: str = "perform this action") -> None:
        """Raise ForbiddenError unless the actor is the given user."""
        if self.user_id != user_id:
            raise ForbiddenError(f"You can only {action} for your own account")

    def __repr__(self) -> str:
        return f"Actor(user_id={self.user_id!r}, role={self.role.value!r})"


def get_current_user(request: Request, db: DbSession) -> Actor:
    """Get the current authenticated user from the bearer token.

    The account must still exist and be active; archiving a user revokes
    their outstanding tokens.
    """
    payload = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    username = payload.get("username")
    role = payload.get("role")

    if user_id is None or username is None or role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        user_role = UserRole(role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid role in token",
        )

    from cafestock.models.user import User
    user = db.get(User, int(user_id))
    if user is None or user.is_archived or user.role != user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is not active",
        )

    return Actor(user_id=user.id, username=user.username, role=user_role)


def require_role(required_role: UserRole):
    """Dependency to require a specific role."""

    def role_checker(
        current_user: Annotated[Actor, Depends(get_current_user)]
    ) -> Actor:
        if current_user.role != required_role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {required_role.value}",
            )
        return current_user

    return role_checker


RequireManager = Annotated[Actor, Depends(require_role(UserRole.MANAGER))]
CurrentUser = Annotated[Actor, Depends(get_current_user)]
