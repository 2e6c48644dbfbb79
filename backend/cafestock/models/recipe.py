"""Recipe models."""

from __future__ import annotations

from decimal import Decimal
from typing import List, TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafestock.db.base import Base, LifecycleMixin, TimestampMixin

if TYPE_CHECKING:
    from cafestock.models.item import Item
    from cafestock.models.transaction import Transaction


class Recipe(Base, TimestampMixin, LifecycleMixin):
    """A drink or dish that consumes items per serving."""

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Relationships
    ingredients: Mapped[List["RecipeIngredient"]] = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    transactions: Mapped[List["Transaction"]] = relationship(
        "Transaction", back_populates="recipe", passive_deletes=True
    )


class RecipeIngredient(Base):
    """Quantity of one item required per serving of a recipe."""

    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        UniqueConstraint("recipe_id", "item_id", name="uq_recipe_ingredient_item"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity_required: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)

    # Relationships
    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="ingredients")
    item: Mapped["Item"] = relationship("Item", back_populates="recipe_ingredients")
