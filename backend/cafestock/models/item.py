"""Inventory item model."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Optional, List, TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafestock.db.base import Base, LifecycleMixin, TimestampMixin
from cafestock.models.reference import Category, Unit

if TYPE_CHECKING:
    from cafestock.models.recipe import RecipeIngredient
    from cafestock.models.transaction import Transaction


# Share of the min..max range that still counts as "medium"
MEDIUM_BAND_FRACTION = Decimal("0.5")


class StockStatus(str, Enum):
    """Derived stock band, most urgent first."""

    OUT = "out"
    LOW = "low"
    MEDIUM = "medium"
    HEALTHY = "healthy"


def stock_status(current: Any, minimum: Any, maximum: Any) -> StockStatus:
    """Classify stock levels. Boundaries fall into the more urgent band."""
    current = Decimal(str(current))
    minimum = Decimal(str(minimum))
    maximum = Decimal(str(maximum))

    if current == 0:
        return StockStatus.OUT
    if current <= minimum:
        return StockStatus.LOW
    if current <= minimum + (maximum - minimum) * MEDIUM_BAND_FRACTION:
        return StockStatus.MEDIUM
    return StockStatus.HEALTHY


class Item(Base, TimestampMixin, LifecycleMixin):
    """A stocked ingredient or supply.

    ``current_stock`` is written only by the stock ledger. ``status`` is
    derived from the stock levels and never stored.
    """

    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_items_stock_non_negative"),
        CheckConstraint("minimum_stock <= maximum_stock", name="ck_items_min_le_max"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False, index=True)
    unit_id: Mapped[int] = mapped_column(ForeignKey("units.id"), nullable=False)
    current_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=0, nullable=False)
    minimum_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=0, nullable=False)
    maximum_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=0, nullable=False)
    ordered: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    category: Mapped[Category] = relationship("Category", lazy="joined")
    unit: Mapped[Unit] = relationship("Unit", lazy="joined")
    recipe_ingredients: Mapped[List["RecipeIngredient"]] = relationship(
        "RecipeIngredient", back_populates="item", cascade="all, delete-orphan", passive_deletes=True
    )
    transactions: Mapped[List["Transaction"]] = relationship(
        "Transaction", back_populates="item", passive_deletes=True
    )

    @property
    def status(self) -> str:
        return stock_status(self.current_stock, self.minimum_stock, self.maximum_stock).value

    @property
    def category_name(self) -> Optional[str]:
        return self.category.name if self.category else None

    @property
    def unit_name(self) -> Optional[str]:
        return self.unit.name if self.unit else None
