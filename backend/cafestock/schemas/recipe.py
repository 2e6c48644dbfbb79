"""Recipe schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class RecipeIngredientIn(BaseModel):
    """Ingredient line in a create/update request."""

    item_id: Optional[int] = None
    quantity_required: Optional[float] = None


class RecipeCreate(BaseModel):
    """Recipe creation schema."""

    name: Optional[str] = Field(None, max_length=255)
    ingredients: List[RecipeIngredientIn] = []


class RecipeUpdate(RecipeCreate):
    """Recipe update schema; the ingredient set is replaced."""


class RecipeIngredientResponse(BaseModel):
    item_id: int
    item_name: str
    unit_name: Optional[str] = None
    quantity_required: float
    current_stock: float
    status: str


class RecipeResponse(BaseModel):
    """Recipe with its active ingredients."""

    id: int
    name: str
    created_at: datetime
    updated_at: datetime
    ingredients: List[RecipeIngredientResponse] = []

    @classmethod
    def from_recipe(cls, recipe) -> "RecipeResponse":
        return cls(
            id=recipe.id,
            name=recipe.name,
            created_at=recipe.created_at,
            updated_at=recipe.updated_at,
            ingredients=[
                RecipeIngredientResponse(
                    item_id=line.item_id,
                    item_name=line.item.name,
                    unit_name=line.item.unit_name,
                    quantity_required=line.quantity_required,
                    current_stock=line.item.current_stock,
                    status=line.item.status,
                )
                for line in recipe.ingredients
                if not line.item.is_archived
            ],
        )
