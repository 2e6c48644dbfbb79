"""User model."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafestock.core.rbac import UserRole
from cafestock.db.base import Base, LifecycleMixin, TimestampMixin

if TYPE_CHECKING:
    from cafestock.models.transaction import Transaction


class User(Base, TimestampMixin, LifecycleMixin):
    """Team member account. The role is fixed at creation."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.BARISTA,
        nullable=False,
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    transactions: Mapped[List["Transaction"]] = relationship(
        "Transaction", back_populates="user", passive_deletes=True
    )
