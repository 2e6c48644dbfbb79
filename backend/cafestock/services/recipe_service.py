"""Recipe management: CRUD over recipes and their ingredient lines."""

import logging
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from cafestock.core.exceptions import ValidationError
from cafestock.core.rbac import Actor
from cafestock.db.session import atomic
from cafestock.models.recipe import Recipe, RecipeIngredient
from cafestock.models.transaction import TransactionType
from cafestock.services.lifecycle import EntityKind, LifecycleManager
from cafestock.services.stock_ledger import to_decimal
from cafestock.services.transaction_log import TransactionLog

logger = logging.getLogger(__name__)


class RecipeService:
    """Recipes and their per-serving ingredient requirements."""

    def __init__(self, db: Session):
        self.db = db
        self.log = TransactionLog(db)
        self.lifecycle = LifecycleManager(db)

    def list_recipes(self) -> List[Recipe]:
        stmt = (
            select(Recipe)
            .where(Recipe.active())
            .options(selectinload(Recipe.ingredients).selectinload(RecipeIngredient.item))
            .order_by(Recipe.name)
        )
        return list(self.db.scalars(stmt))

    def get_recipe(self, recipe_id: int) -> Recipe:
        return self.lifecycle.get_active(EntityKind.RECIPE, recipe_id)

    def _validate(
        self, name: Optional[str], ingredients: Optional[List[Mapping[str, Any]]]
    ) -> Tuple[str, List[Tuple[int, Decimal]]]:
        if not name or not name.strip():
            raise ValidationError("Recipe name is required")
        if not ingredients:
            raise ValidationError("A recipe needs at least one ingredient")

        lines = []
        seen = set()
        for ingredient in ingredients:
            item_id = ingredient.get("item_id")
            quantity = ingredient.get("quantity_required")
            if not item_id or quantity is None:
                raise ValidationError("Each ingredient must have item_id and quantity_required")
            quantity = to_decimal(quantity, "quantity_required")
            if quantity <= 0:
                raise ValidationError("quantity_required must be greater than zero")
            if item_id in seen:
                raise ValidationError(f"Item {item_id} appears more than once in the recipe")
            seen.add(item_id)
            # Ingredients must reference active items
            self.lifecycle.get_active(EntityKind.ITEM, item_id)
            lines.append((item_id, quantity))
        return name.strip(), lines

    def create_recipe(
        self, name: Optional[str], ingredients: Optional[List[Mapping[str, Any]]], actor: Actor
    ) -> Recipe:
        actor.require_manager("create recipes")
        with atomic(self.db):
            name, lines = self._validate(name, ingredients)
            self.lifecycle.ensure_name_available(EntityKind.RECIPE, name)

            recipe = Recipe(name=name)
            recipe.ingredients = [
                RecipeIngredient(item_id=item_id, quantity_required=quantity) for item_id, quantity in lines
            ]
            self.db.add(recipe)
            self.db.flush()

            self.log.record(
                TransactionType.ADDED,
                actor=actor,
                recipe_id=recipe.id,
                notes=f'Recipe "{name}" created with {len(lines)} ingredient(s)',
            )
        logger.info(f"Recipe {recipe.id} created by user {actor.user_id}")
        return recipe

    def update_recipe(
        self,
        recipe_id: int,
        name: Optional[str],
        ingredients: Optional[List[Mapping[str, Any]]],
        actor: Actor,
    ) -> Recipe:
        """Rename a recipe and replace its whole ingredient set."""
        actor.require_manager("update recipes")
        with atomic(self.db):
            recipe = self.get_recipe(recipe_id)
            name, lines = self._validate(name, ingredients)
            self.lifecycle.ensure_name_available(EntityKind.RECIPE, name, exclude_id=recipe.id)

            recipe.name = name
            # Old lines must be gone before the new ones hit the unique constraint
            recipe.ingredients.clear()
            self.db.flush()
            recipe.ingredients.extend(
                RecipeIngredient(item_id=item_id, quantity_required=quantity) for item_id, quantity in lines
            )
            self.db.flush()

            self.log.record(
                TransactionType.UPDATE,
                actor=actor,
                recipe_id=recipe.id,
                notes=f'Recipe "{name}" updated ({len(lines)} ingredient(s))',
            )
        logger.info(f"Recipe {recipe_id} updated by user {actor.user_id}")
        return recipe

    def archive_recipe(self, recipe_id: int, actor: Actor) -> None:
        self.lifecycle.archive(EntityKind.RECIPE, recipe_id, actor)

    def restore_recipe(self, recipe_id: int, actor: Actor) -> None:
        self.lifecycle.restore(EntityKind.RECIPE, recipe_id, actor)

    def purge_recipe(self, recipe_id: int, actor: Actor) -> None:
        self.lifecycle.purge(EntityKind.RECIPE, recipe_id, actor)
