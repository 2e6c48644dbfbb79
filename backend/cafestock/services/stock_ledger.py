"""Stock Ledger - single source of truth for item quantities.

Only this service writes ``Item.current_stock``. Every mutation appends a
transaction row in the same atomic unit, so a failed audit write rolls the
stock change back with it.

Stock never goes negative: decrements are issued as a conditional UPDATE
(``WHERE round(current_stock + :delta, 3) >= 0``) so the database re-validates
at write time even if a concurrent request moved the stock after our pre-check.
Both the stored sum and the check are rounded to the column scale; SQLite keeps
Numeric columns as REAL and would otherwise drift below an exact zero.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
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
from cafestock.models.reference import Category, Unit
from cafestock.models.transaction import TransactionType
from cafestock.services.lifecycle import EntityKind, LifecycleManager
from cafestock.services.transaction_log import TransactionLog

logger = logging.getLogger(__name__)

# Types a caller may post through adjust_stock; lifecycle kinds are written
# by the lifecycle manager only.
ADJUSTMENT_TYPES = {TransactionType.USAGE, TransactionType.RESTOCK, TransactionType.UPDATE}

# Decimal places of the stock columns
STOCK_SCALE = 3

REQUIRED_ITEM_FIELDS = (
    "name",
    "category_id",
    "unit_id",
    "current_stock",
    "minimum_stock",
    "maximum_stock",
)


class StockLedger:
    """Item creation, editing and every change to stock quantities."""

    def __init__(self, db: Session):
        self.db = db
        self.log = TransactionLog(db)
        self.lifecycle = LifecycleManager(db)

    # ===== READS =====

    def get_item(self, item_id: int) -> Item:
        """Active item or NotFoundError."""
        return self.lifecycle.get_active(EntityKind.ITEM, item_id)

    def list_items(self) -> List[Item]:
        """Active items ordered by name."""
        return list(self.db.scalars(select(Item).where(Item.active()).order_by(Item.name)).unique())

    def list_low_stock(self) -> List[Item]:
        """Active items at or below their minimum."""
        stmt = (
            select(Item)
            .where(Item.active(), Item.current_stock <= Item.minimum_stock)
            .order_by(Item.name)
        )
        return list(self.db.scalars(stmt).unique())

    # ===== VALIDATION =====

    def _validate_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        missing = [f for f in REQUIRED_ITEM_FIELDS if fields.get(f) is None]
        name = fields.get("name")
        if isinstance(name, str) and not name.strip() and "name" not in missing:
            missing.insert(0, "name")
        if missing:
            raise ValidationError(
                "All required fields must be provided",
                detail={"missing": missing},
            )

        current = to_decimal(fields["current_stock"], "current_stock")
        minimum = to_decimal(fields["minimum_stock"], "minimum_stock")
        maximum = to_decimal(fields["maximum_stock"], "maximum_stock")
        for field, value in (("current_stock", current), ("minimum_stock", minimum), ("maximum_stock", maximum)):
            if value < 0:
                raise ValidationError(f"{field} cannot be negative")
        if minimum > maximum:
            raise ValidationError("minimum_stock cannot be greater than maximum_stock")

        if self.db.get(Category, fields["category_id"]) is None:
            raise ValidationError(f"Category {fields['category_id']} does not exist")
        if self.db.get(Unit, fields["unit_id"]) is None:
            raise ValidationError(f"Unit {fields['unit_id']} does not exist")

        description = fields.get("description")
        return {
            "name": name.strip(),
            "category_id": fields["category_id"],
            "unit_id": fields["unit_id"],
            "current_stock": current,
            "minimum_stock": minimum,
            "maximum_stock": maximum,
            "description": description.strip() if description and description.strip() else None,
        }

    # ===== ITEM CRUD =====

    def create_item(self, actor: Actor, **fields: Any) -> Item:
        """Create an item and record its opening stock as an ``added`` row."""
        actor.require_manager("create items")
        with atomic(self.db):
            values = self._validate_fields(fields)
            self.lifecycle.ensure_name_available(EntityKind.ITEM, values["name"])

            item = Item(**values)
            self.db.add(item)
            self.db.flush()

            self.log.record(
                TransactionType.ADDED,
                actor=actor,
                item_id=item.id,
                quantity=item.current_stock,
                notes=f'New item "{item.name}" added to inventory',
            )
        logger.info(f"Item {item.id} created by user {actor.user_id} with stock {values['current_stock']}")
        return item

    def update_item(self, item_id: int, actor: Actor, **fields: Any) -> Item:
        """Replace an item's editable fields; records old and new stock."""
        actor.require_manager("update items")
        with atomic(self.db):
            item = self.get_item(item_id)
            values = self._validate_fields(fields)
            self.lifecycle.ensure_name_available(EntityKind.ITEM, values["name"], exclude_id=item.id)

            old_stock = item.current_stock
            for key, value in values.items():
                setattr(item, key, value)
            self.db.flush()

            self.log.record(
                TransactionType.UPDATE,
                actor=actor,
                item_id=item.id,
                quantity=values["current_stock"],
                notes=(
                    f"Item updated. Old stock: {format_quantity(old_stock)}, "
                    f"New stock: {format_quantity(values['current_stock'])}"
                ),
            )
        logger.info(f"Item {item_id} updated by user {actor.user_id}")
        return item

    # ===== STOCK MUTATION =====

    def apply_delta(
        self,
        item_id: int,
        delta: Decimal,
        transaction_type: TransactionType,
        notes: Optional[str],
        actor: Optional[Actor],
        recipe_id: Optional[int] = None,
        quantity: Optional[Decimal] = None,
    ) -> Item:
        """Apply ``current_stock += delta`` and log it. The caller owns the unit.

        Raises InsufficientStockError, leaving stock untouched, when the
        result would be negative.
        """
        item = self.get_item(item_id)

        stmt = (
            update(Item)
            .where(Item.id == item_id, Item.active())
            .values(current_stock=func.round(Item.current_stock + delta, STOCK_SCALE))
        )
        if delta < 0:
            stmt = stmt.where(func.round(Item.current_stock + delta, STOCK_SCALE) >= 0)
        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        self.db.refresh(item)

        if result.rowcount != 1:
            if item.is_archived:
                raise NotFoundError("item", item_id)
            logger.warning(
                f"Rejected stock change of {delta} on item {item_id}: only {item.current_stock} available"
            )
            raise InsufficientStockError([
                Shortfall(
                    item_id=item.id,
                    item=item.name,
                    required=-delta,
                    available=item.current_stock,
                    unit=item.unit_name,
                )
            ])

        self.log.record(
            transaction_type,
            actor=actor,
            item_id=item.id,
            recipe_id=recipe_id,
            quantity=quantity if quantity is not None else abs(delta),
            notes=notes,
        )
        return item

    def adjust_stock(
        self,
        item_id: int,
        delta: Any,
        transaction_type: TransactionType,
        notes: Optional[str],
        actor: Actor,
    ) -> Decimal:
        """Add *delta* (may be negative) to an item's stock; returns the new quantity.

        Any role may post ``usage``; other adjustments need a manager.
        """
        transaction_type = TransactionType(transaction_type)
        if transaction_type not in ADJUSTMENT_TYPES:
            raise ValidationError(f"Cannot adjust stock with transaction type '{transaction_type.value}'")
        if transaction_type != TransactionType.USAGE:
            actor.require_manager("adjust stock")
        delta = to_decimal(delta, "delta")
        if delta == 0:
            raise ValidationError("delta must be non-zero")

        with atomic(self.db):
            item = self.apply_delta(item_id, delta, transaction_type, notes, actor)
            new_quantity = item.current_stock
        logger.info(f"Item {item_id} adjusted by {delta} ({transaction_type.value}) -> {new_quantity}")
        return new_quantity

    # ===== LIFECYCLE =====

    def archive_item(self, item_id: int, actor: Actor) -> None:
        self.lifecycle.archive(EntityKind.ITEM, item_id, actor)

    def restore_item(self, item_id: int, actor: Actor) -> None:
        self.lifecycle.restore(EntityKind.ITEM, item_id, actor)

    def purge_item(self, item_id: int, actor: Actor) -> None:
        self.lifecycle.purge(EntityKind.ITEM, item_id, actor)
