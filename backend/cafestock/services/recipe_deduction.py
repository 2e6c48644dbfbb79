"""Recipe Deduction Engine - consumes stock for servings and manual usage.

Flow:
1. Validate the request (servings / entries)
2. Resolve the ingredients or items (active only)
3. Pre-check every line against current stock, collecting ALL shortfalls
4. Apply each deduction through the stock ledger inside one atomic unit

The pre-check gives the caller a complete shortfall list. The ledger's
conditional update still re-validates every write, so a concurrent
deduction between the two phases rolls the whole unit back.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from cafestock.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    Shortfall,
    ValidationError,
)
from cafestock.core.rbac import Actor
from cafestock.db.session import atomic
from cafestock.models.item import Item
from cafestock.models.recipe import Recipe, RecipeIngredient
from cafestock.models.transaction import TransactionType
from cafestock.services.lifecycle import EntityKind
from cafestock.services.stock_ledger import StockLedger, to_decimal

logger = logging.getLogger(__name__)


@dataclass
class UsageResult:
    """Summary of a committed deduction."""

    items_updated: int = 0
    deductions: List[Dict[str, Any]] = field(default_factory=list)


class RecipeDeductionService:
    """Deducts stock for recipe servings and manual usage entries."""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = StockLedger(db)

    def _check_stock(self, required: Iterable[Tuple[Item, Decimal]]) -> None:
        shortfalls = [
            Shortfall(
                item_id=item.id,
                item=item.name,
                required=amount,
                available=item.current_stock,
                unit=item.unit_name,
            )
            for item, amount in required
            if item.current_stock < amount
        ]
        if shortfalls:
            logger.warning(
                f"Deduction rejected, {len(shortfalls)} item(s) short: "
                + ", ".join(f"{s.item} ({s.available}/{s.required})" for s in shortfalls)
            )
            raise InsufficientStockError(shortfalls)

    def _active_ingredients(self, recipe_id: int) -> List[RecipeIngredient]:
        stmt = (
            select(RecipeIngredient)
            .join(Recipe, RecipeIngredient.recipe_id == Recipe.id)
            .join(Item, RecipeIngredient.item_id == Item.id)
            .where(
                RecipeIngredient.recipe_id == recipe_id,
                Recipe.active(),
                Item.active(),
            )
            .order_by(RecipeIngredient.id)
        )
        return list(self.db.scalars(stmt))

    def log_recipe_usage(self, recipe_id: int, servings: Any, actor: Actor) -> UsageResult:
        """Deduct ``quantity_required * servings`` of every ingredient.

        Raises:
            ValidationError: servings missing or not positive.
            NotFoundError: recipe missing/archived or has no active ingredients.
            InsufficientStockError: one or more ingredients fall short; nothing
                is deducted.
        """
        if servings is None:
            raise ValidationError("servings is required")
        servings = to_decimal(servings, "servings")
        if servings <= 0:
            raise ValidationError("servings must be greater than zero")

        with atomic(self.db):
            ingredients = self._active_ingredients(recipe_id)
            if not ingredients:
                raise NotFoundError("recipe", recipe_id, "Recipe not found or has no ingredients")

            required = [(ing.item, ing.quantity_required * servings) for ing in ingredients]
            self._check_stock(required)

            notes = f"Recipe usage: {servings.normalize():f} serving(s)"
            result = UsageResult()
            for item, amount in required:
                updated = self.ledger.apply_delta(
                    item.id,
                    -amount,
                    TransactionType.USAGE,
                    notes,
                    actor,
                    recipe_id=recipe_id,
                )
                result.items_updated += 1
                result.deductions.append(
                    {"item_id": updated.id, "item": updated.name, "quantity": amount, "remaining": updated.current_stock}
                )

        logger.info(
            f"Recipe {recipe_id} x{servings} logged by user {actor.user_id}: "
            f"{result.items_updated} item(s) deducted"
        )
        return result

    def _parse_entries(self, entries: List[Mapping[str, Any]]) -> List[Tuple[int, Decimal, Any]]:
        if not entries:
            raise ValidationError("At least one usage entry is required")

        parsed = []
        for entry in entries:
            item_id = entry.get("item_id")
            quantity = entry.get("quantity")
            if not item_id or quantity is None:
                raise ValidationError("Each item must have item_id and positive quantity")
            quantity = to_decimal(quantity, "quantity")
            if quantity <= 0:
                raise ValidationError("Each item must have item_id and positive quantity")
            parsed.append((item_id, quantity, entry.get("notes")))
        return parsed

    def log_manual_usage(self, entries: List[Mapping[str, Any]], actor: Actor) -> UsageResult:
        """Deduct a list of ``{item_id, quantity[, notes]}`` entries atomically.

        Entries naming the same item are summed for the pre-check; one usage
        transaction is written per entry.
        """
        parsed = self._parse_entries(entries)

        with atomic(self.db):
            totals: "OrderedDict[int, Decimal]" = OrderedDict()
            items: Dict[int, Item] = {}
            for item_id, quantity, _ in parsed:
                if item_id not in items:
                    items[item_id] = self.ledger.lifecycle.get_active(EntityKind.ITEM, item_id)
                totals[item_id] = totals.get(item_id, Decimal("0")) + quantity

            self._check_stock((items[item_id], total) for item_id, total in totals.items())

            result = UsageResult()
            for item_id, quantity, notes in parsed:
                updated = self.ledger.apply_delta(
                    item_id,
                    -quantity,
                    TransactionType.USAGE,
                    notes or "Manual usage entry",
                    actor,
                )
                result.deductions.append(
                    {"item_id": updated.id, "item": updated.name, "quantity": quantity, "remaining": updated.current_stock}
                )
            result.items_updated = len(totals)

        logger.info(
            f"Manual usage logged by user {actor.user_id}: "
            f"{len(parsed)} entr{'y' if len(parsed) == 1 else 'ies'} across {result.items_updated} item(s)"
        )
        return result
