"""Ordering status: flag items as ordered and receive deliveries."""

import logging
from typing import Any

from sqlalchemy.orm import Session

from cafestock.core.exceptions import AlreadyOrderedError, ValidationError
from cafestock.core.rbac import Actor
from cafestock.db.session import atomic
from cafestock.models.item import Item
from cafestock.models.transaction import TransactionType
from cafestock.services.stock_ledger import StockLedger, format_quantity, to_decimal

logger = logging.getLogger(__name__)


class OrderingService:
    def __init__(self, db: Session):
        self.db = db
        self.ledger = StockLedger(db)

    def mark_ordered(self, item_id: int, actor: Actor) -> Item:
        """Flag an item as on order. Raises AlreadyOrderedError if it is."""
        actor.require_manager("mark items as ordered")
        with atomic(self.db):
            item = self.ledger.get_item(item_id)
            if item.ordered:
                raise AlreadyOrderedError(item.name)

            item.ordered = True
            self.db.flush()
            self.ledger.log.record(
                TransactionType.UPDATE,
                actor=actor,
                item_id=item.id,
                notes=f'Marked "{item.name}" as ordered',
            )
        logger.info(f"Item {item_id} marked as ordered by user {actor.user_id}")
        return item

    def restock(self, item_id: int, quantity: Any, actor: Actor) -> Item:
        """Add a delivery to stock and clear the ordered flag.

        The flag is cleared whether or not it was set.
        """
        actor.require_manager("restock items")
        if quantity is None:
            raise ValidationError("quantity is required")
        quantity = to_decimal(quantity, "quantity")
        if quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        with atomic(self.db):
            item = self.ledger.get_item(item_id)
            item = self.ledger.apply_delta(
                item.id,
                quantity,
                TransactionType.RESTOCK,
                f'Restocked {format_quantity(quantity)} unit(s) of "{item.name}"',
                actor,
            )
            item.ordered = False
            self.db.flush()
        logger.info(f"Item {item_id} restocked with {quantity} by user {actor.user_id}")
        return item
