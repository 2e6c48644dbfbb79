"""SQLAlchemy models."""

from cafestock.models.reference import Category, Unit
from cafestock.models.user import User
from cafestock.models.item import Item
from cafestock.models.recipe import Recipe, RecipeIngredient
from cafestock.models.transaction import Transaction, TransactionType

__all__ = [
    "Category",
    "Unit",
    "User",
    "Item",
    "Recipe",
    "RecipeIngredient",
    "Transaction",
    "TransactionType",
]
