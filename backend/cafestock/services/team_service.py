"""Team management: sign-up, sign-in and barista account administration."""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cafestock.core.config import settings
from cafestock.core.exceptions import ForbiddenError, ValidationError
from cafestock.core.rbac import Actor, UserRole
from cafestock.core.security import get_password_hash, password_policy_violation, verify_password
from cafestock.db.base import utcnow
from cafestock.db.session import atomic
from cafestock.models.transaction import TransactionType
from cafestock.models.user import User
from cafestock.services.lifecycle import EntityKind, LifecycleManager
from cafestock.services.transaction_log import TransactionLog

logger = logging.getLogger(__name__)


class TeamService:
    """User accounts. Roles are fixed at creation."""

    def __init__(self, db: Session):
        self.db = db
        self.log = TransactionLog(db)
        self.lifecycle = LifecycleManager(db)

    # ===== VALIDATION =====

    def _clean_username(self, username: Optional[str]) -> str:
        username = (username or "").strip()
        if len(username) < settings.username_min_length:
            raise ValidationError(
                f"Username must be at least {settings.username_min_length} characters"
            )
        return username

    def _check_password(self, password: Optional[str]) -> str:
        if not password:
            raise ValidationError("Password is required")
        violation = password_policy_violation(password)
        if violation:
            raise ValidationError(violation)
        return password

    def _create_user(self, username: str, password: str, role: UserRole) -> User:
        username = self._clean_username(username)
        self._check_password(password)
        self.lifecycle.ensure_name_available(EntityKind.USER, username)

        user = User(username=username, password_hash=get_password_hash(password), role=role)
        self.db.add(user)
        self.db.flush()
        return user

    # ===== ACCOUNT CREATION =====

    def register_barista(self, username: str, password: str) -> User:
        """Public sign-up. Always creates a barista account."""
        with atomic(self.db):
            user = self._create_user(username, password, UserRole.BARISTA)
        logger.info(f"Barista account {user.id} registered")
        return user

    def create_barista(self, username: str, password: str, actor: Actor) -> User:
        """Manager creates a barista account."""
        actor.require_manager("create team members")
        with atomic(self.db):
            user = self._create_user(username, password, UserRole.BARISTA)
        logger.info(f"Barista account {user.id} created by user {actor.user_id}")
        return user

    def create_manager(self, username: str, password: str) -> User:
        """Bootstrap a manager account (seed script only)."""
        with atomic(self.db):
            user = self._create_user(username, password, UserRole.MANAGER)
        logger.info(f"Manager account {user.id} created")
        return user

    # ===== AUTHENTICATION =====

    def authenticate(self, username: str, password: str, role: UserRole) -> Optional[User]:
        """Verify credentials for an active account.

        Returns None on unknown user or wrong password. Raises ForbiddenError
        when the credentials are right but the account holds another role.
        """
        user = self.lifecycle.find_active_by_name(EntityKind.USER, username or "")
        if user is None or not verify_password(password or "", user.password_hash):
            return None
        if user.role != UserRole(role):
            raise ForbiddenError(f"This account cannot sign in as {UserRole(role).value}")

        with atomic(self.db):
            user.last_login_at = utcnow()
        return user

    # ===== PROFILE =====

    def get_profile(self, user_id: int, actor: Actor) -> User:
        if not actor.is_manager:
            actor.require_self(user_id, "view the profile")
        return self.lifecycle.get_active(EntityKind.USER, user_id)

    def change_password(self, user_id: int, current_password: str, new_password: str, actor: Actor) -> None:
        actor.require_self(user_id, "change the password")
        if not current_password:
            raise ValidationError("Current password and new password are required")
        self._check_password(new_password)

        with atomic(self.db):
            user = self.lifecycle.get_active(EntityKind.USER, user_id)
            if not verify_password(current_password, user.password_hash):
                raise ValidationError("Current password is incorrect")
            user.password_hash = get_password_hash(new_password)
        logger.info(f"User {user_id} changed their password")

    def set_barista_password(self, user_id: int, new_password: str, actor: Actor) -> None:
        actor.require_manager("reset passwords")
        self._check_password(new_password)

        with atomic(self.db):
            user = self.lifecycle.get_active(EntityKind.USER, user_id)
            if user.role != UserRole.BARISTA:
                raise ValidationError("Can only update barista passwords")
            user.password_hash = get_password_hash(new_password)
        logger.info(f"Password for user {user_id} reset by user {actor.user_id}")

    def change_username(self, user_id: int, username: str, actor: Actor) -> User:
        actor.require_self(user_id, "change the username")
        with atomic(self.db):
            user = self.lifecycle.get_active(EntityKind.USER, user_id)
            username = self._clean_username(username)
            self.lifecycle.ensure_name_available(EntityKind.USER, username, exclude_id=user.id)
            old_username = user.username
            user.username = username
            self.log.record(
                TransactionType.UPDATE,
                actor=actor,
                notes=f'Username changed from "{old_username}" to "{username}"',
            )
        logger.info(f"User {user_id} changed their username")
        return user

    # ===== TEAM =====

    def count_baristas(self) -> int:
        return self.db.scalar(
            select(func.count(User.id)).where(User.active(), User.role == UserRole.BARISTA)
        ) or 0

    def list_baristas(self, actor: Actor) -> List[User]:
        actor.require_manager("view the team")
        stmt = (
            select(User)
            .where(User.active(), User.role == UserRole.BARISTA)
            .order_by(User.created_at.desc(), User.id.desc())
        )
        return list(self.db.scalars(stmt))

    def archive_barista(self, user_id: int, actor: Actor) -> None:
        self.lifecycle.archive(EntityKind.USER, user_id, actor)

    def restore_barista(self, user_id: int, actor: Actor) -> None:
        self.lifecycle.restore(EntityKind.USER, user_id, actor)

    def purge_barista(self, user_id: int, actor: Actor) -> None:
        self.lifecycle.purge(EntityKind.USER, user_id, actor)
