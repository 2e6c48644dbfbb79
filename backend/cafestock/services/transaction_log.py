"""Transaction log: append-only audit trail of inventory events.

Writers call ``record`` inside their own atomic unit; the row is flushed but
never committed here, so a failed unit takes its audit rows with it.
Readers get rows joined with item, recipe, unit and user names.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cafestock.core.rbac import Actor
from cafestock.models.item import Item
from cafestock.models.recipe import Recipe
from cafestock.models.reference import Unit
from cafestock.models.transaction import Transaction, TransactionType
from cafestock.models.user import User

logger = logging.getLogger(__name__)


class TransactionLog:
    """Append and read audit rows."""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        transaction_type: TransactionType,
        actor: Optional[Actor] = None,
        item_id: Optional[int] = None,
        recipe_id: Optional[int] = None,
        quantity: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> Transaction:
        """Append one row to the caller's unit of work."""
        entry = Transaction(
            transaction_type=transaction_type.value,
            item_id=item_id,
            recipe_id=recipe_id,
            user_id=actor.user_id if actor else None,
            quantity=quantity,
            notes=notes,
        )
        self.db.add(entry)
        self.db.flush()
        logger.debug(
            f"Recorded {transaction_type.value} transaction {entry.id} "
            f"(item={item_id}, recipe={recipe_id}, actor={entry.user_id})"
        )
        return entry

    # ===== READS =====

    def _joined_query(self):
        return (
            select(
                Transaction.id,
                Transaction.transaction_type,
                Transaction.quantity,
                Transaction.notes,
                Transaction.created_at,
                Transaction.item_id,
                Transaction.recipe_id,
                Transaction.user_id,
                Item.name.label("item_name"),
                Recipe.name.label("recipe_name"),
                Unit.name.label("unit_name"),
                User.username.label("username"),
            )
            .outerjoin(Item, Transaction.item_id == Item.id)
            .outerjoin(Recipe, Transaction.recipe_id == Recipe.id)
            .outerjoin(Unit, Item.unit_id == Unit.id)
            .outerjoin(User, Transaction.user_id == User.id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        )

    def _rows(self, stmt) -> List[Dict[str, Any]]:
        return [dict(row._mapping) for row in self.db.execute(stmt)]

    def recent_for_user(self, user_id: int, limit: int) -> List[Dict[str, Any]]:
        """Most recent rows recorded by one user."""
        stmt = self._joined_query().where(Transaction.user_id == user_id).limit(limit)
        return self._rows(stmt)

    def recent(self, limit: int) -> List[Dict[str, Any]]:
        """Most recent rows across the whole team."""
        return self._rows(self._joined_query().limit(limit))

    def list_all(
        self,
        actor: Actor,
        skip: int = 0,
        limit: int = 100,
        transaction_type: Optional[TransactionType] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Full history, newest first. Manager only."""
        actor.require_manager("view the transaction history")
        stmt = self._joined_query()
        count_stmt = select(func.count(Transaction.id))
        if transaction_type is not None:
            stmt = stmt.where(Transaction.transaction_type == transaction_type.value)
            count_stmt = count_stmt.where(Transaction.transaction_type == transaction_type.value)
        total = self.db.scalar(count_stmt) or 0
        return self._rows(stmt.offset(skip).limit(limit)), total

    def for_item(self, item_id: int) -> List[Transaction]:
        """Rows attached to one item, newest first."""
        stmt = (
            select(Transaction)
            .where(Transaction.item_id == item_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        )
        return list(self.db.scalars(stmt))
