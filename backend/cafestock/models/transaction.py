"""Transaction log model: the immutable audit trail of the inventory."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafestock.db.base import Base

if TYPE_CHECKING:
    from cafestock.models.item import Item
    from cafestock.models.recipe import Recipe
    from cafestock.models.user import User


class TransactionType(str, Enum):
    """Kinds of recorded events."""

    ADDED = "added"  # Item or recipe created
    USAGE = "usage"  # Stock consumed by a recipe or a manual entry
    RESTOCK = "restock"  # Delivery received; quantity is the amount added
    UPDATE = "update"  # Item/recipe edited, or item flagged as ordered
    ARCHIVE = "archive"
    RESTORE = "restore"
    PURGE = "purge"  # Written just before the row is removed


class Transaction(Base):
    """One immutable audit row.

    Foreign keys are SET NULL on delete so the purge record outlives the
    row it describes; the notes name the entity.
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    recipe_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    # Relationships
    item: Mapped[Optional["Item"]] = relationship("Item", back_populates="transactions")
    recipe: Mapped[Optional["Recipe"]] = relationship("Recipe", back_populates="transactions")
    user: Mapped[Optional["User"]] = relationship("User", back_populates="transactions")
