"""SQLAlchemy declarative base and common mixins."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Enum as SAEnum, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class LifecycleState(str, Enum):
    """Soft-delete state shared by items, recipes and users."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class LifecycleMixin:
    """Active/archived state plus the ``deleted_at`` stamp.

    ``deleted_at`` is set exactly when the row is archived. Purging removes
    the row and is only reachable from the archived state.
    """

    lifecycle_state: Mapped[LifecycleState] = mapped_column(
        SAEnum(
            LifecycleState,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=LifecycleState.ACTIVE,
        server_default=LifecycleState.ACTIVE.value,
        nullable=False,
        index=True,
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None,
    )

    @property
    def is_archived(self) -> bool:
        return self.lifecycle_state == LifecycleState.ARCHIVED

    def archive(self, now: Optional[datetime] = None) -> None:
        """Move an active row to the archive."""
        self.lifecycle_state = LifecycleState.ARCHIVED
        self.deleted_at = now or utcnow()

    def restore(self) -> None:
        """Bring an archived row back to the active set."""
        self.lifecycle_state = LifecycleState.ACTIVE
        self.deleted_at = None

    @classmethod
    def active(cls):
        """SQLAlchemy filter expression for active rows."""
        return cls.lifecycle_state == LifecycleState.ACTIVE

    @classmethod
    def archived(cls):
        """SQLAlchemy filter expression for archived rows."""
        return cls.lifecycle_state == LifecycleState.ARCHIVED
