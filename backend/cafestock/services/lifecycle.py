"""Soft-delete lifecycle shared by items, recipes and user accounts.

States:
    active -> archived -> purged (row removed)
    archived -> active (restore)

Archiving stamps ``deleted_at``. After ``archive_retention_days`` an archived
row becomes eligible for purge, either by a manager or by the periodic sweep
(``run_archive_sweep``), which purges each expired row in its own unit so one
bad row does not hold back the rest.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import select
from sqlalchemy.orm import Session

from cafestock.core.config import settings
from cafestock.core.exceptions import (
    CafeStockError,
    DuplicateNameError,
    ForbiddenError,
    NotFoundError,
)
from cafestock.core.rbac import Actor, UserRole
from cafestock.core.validators import normalize_name, normalized_column
from cafestock.db.base import as_utc, utcnow
from cafestock.db.session import SessionLocal, atomic
from cafestock.models.item import Item
from cafestock.models.recipe import Recipe
from cafestock.models.transaction import TransactionType
from cafestock.models.user import User
from cafestock.services.transaction_log import TransactionLog

logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    """Entity types that share the archive lifecycle."""

    ITEM = "item"
    RECIPE = "recipe"
    USER = "user"


@dataclass(frozen=True)
class _KindSpec:
    model: Type
    name_attr: str
    label: str
    link_field: Optional[str]  # Transaction column pointing at the entity


_KINDS: Dict[EntityKind, _KindSpec] = {
    EntityKind.ITEM: _KindSpec(Item, "name", "Item", "item_id"),
    EntityKind.RECIPE: _KindSpec(Recipe, "name", "Recipe", "recipe_id"),
    EntityKind.USER: _KindSpec(User, "username", "User", None),
}


def days_until_purge(
    deleted_at: datetime,
    now: Optional[datetime] = None,
    retention_days: Optional[int] = None,
) -> int:
    """Whole days left before an archived row may be purged.

    Zero or negative means the row is eligible now.
    """
    retention = retention_days if retention_days is not None else settings.archive_retention_days
    now = as_utc(now) if now else utcnow()
    elapsed = now - as_utc(deleted_at)
    return retention - elapsed.days


@dataclass
class SweepResult:
    """Outcome of one expired-archive sweep."""

    kind: EntityKind
    count: int = 0
    failed: List[int] = field(default_factory=list)


class LifecycleManager:
    """Archive, restore and purge for any ``EntityKind``."""

    def __init__(self, db: Session, retention_days: Optional[int] = None):
        self.db = db
        self.retention_days = (
            retention_days if retention_days is not None else settings.archive_retention_days
        )
        self.log = TransactionLog(db)

    # ===== LOOKUPS =====

    def _kind(self, kind: EntityKind) -> _KindSpec:
        return _KINDS[EntityKind(kind)]

    def _name_of(self, kind: EntityKind, row) -> str:
        return getattr(row, self._kind(kind).name_attr)

    def get_active(self, kind: EntityKind, entity_id: int):
        """Return the active row or raise NotFoundError."""
        info = self._kind(kind)
        row = self.db.get(info.model, entity_id)
        if row is None or row.is_archived:
            raise NotFoundError(info.label.lower(), entity_id)
        return row

    def get_archived(self, kind: EntityKind, entity_id: int):
        """Return the archived row or raise NotFoundError."""
        info = self._kind(kind)
        row = self.db.get(info.model, entity_id)
        if row is None or not row.is_archived:
            raise NotFoundError(
                info.label.lower(), entity_id, f"Archived {info.label.lower()} not found"
            )
        return row

    def find_active_by_name(self, kind: EntityKind, name: str, exclude_id: Optional[int] = None):
        """Active row of *kind* whose name matches case/whitespace-insensitively."""
        info = self._kind(kind)
        model = info.model
        stmt = select(model).where(
            model.active(),
            normalized_column(getattr(model, info.name_attr)) == normalize_name(name),
        )
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        return self.db.scalars(stmt.limit(1)).first()

    def ensure_name_available(self, kind: EntityKind, name: str, exclude_id: Optional[int] = None) -> None:
        """Raise DuplicateNameError if an active row already holds *name*."""
        if self.find_active_by_name(kind, name, exclude_id) is not None:
            raise DuplicateNameError(self._kind(kind).label.lower(), name.strip())

    def _record(self, kind: EntityKind, row, transaction_type: TransactionType, actor: Actor, notes: str, quantity=None):
        info = self._kind(kind)
        links = {info.link_field: row.id} if info.link_field else {}
        self.log.record(transaction_type, actor=actor, quantity=quantity, notes=notes, **links)

    # ===== TRANSITIONS (no commit; callers own the unit) =====

    def _archive(self, kind: EntityKind, entity_id: int, actor: Actor) -> None:
        actor.require_manager("archive records")
        info = self._kind(kind)
        row = self.get_active(kind, entity_id)
        if kind == EntityKind.USER and row.role == UserRole.MANAGER:
            raise ForbiddenError("Manager accounts cannot be archived")

        row.archive()
        self._record(kind, row, TransactionType.ARCHIVE, actor, f'{info.label} "{self._name_of(kind, row)}" archived')
        logger.info(f"{info.label} {entity_id} archived by user {actor.user_id}")

    def _restore(self, kind: EntityKind, entity_id: int, actor: Actor) -> None:
        actor.require_manager("restore records")
        info = self._kind(kind)
        row = self.get_archived(kind, entity_id)
        name = self._name_of(kind, row)
        self.ensure_name_available(kind, name, exclude_id=row.id)

        row.restore()
        self._record(kind, row, TransactionType.RESTORE, actor, f'{info.label} "{name}" restored from archive')
        logger.info(f"{info.label} {entity_id} restored by user {actor.user_id}")

    def _purge(self, kind: EntityKind, entity_id: int, actor: Actor, automatic: bool = False) -> None:
        actor.require_manager("permanently delete records")
        info = self._kind(kind)
        row = self.get_archived(kind, entity_id)
        name = self._name_of(kind, row)
        if automatic:
            notes = f'{info.label} "{name}" auto-deleted after {self.retention_days} days in archive'
        else:
            notes = f'{info.label} "{name}" permanently deleted from archive'
        quantity = row.current_stock if kind == EntityKind.ITEM else None

        # The audit row goes in first; its link is nulled when the row is removed.
        self._record(kind, row, TransactionType.PURGE, actor, notes, quantity=quantity)
        self.db.delete(row)
        self.db.flush()
        logger.info(f"{info.label} {entity_id} purged by user {actor.user_id} (automatic={automatic})")

    # ===== PUBLIC OPERATIONS (one atomic unit each) =====

    def archive(self, kind: EntityKind, entity_id: int, actor: Actor) -> None:
        with atomic(self.db):
            self._archive(kind, entity_id, actor)

    def restore(self, kind: EntityKind, entity_id: int, actor: Actor) -> None:
        with atomic(self.db):
            self._restore(kind, entity_id, actor)

    def purge(self, kind: EntityKind, entity_id: int, actor: Actor) -> None:
        with atomic(self.db):
            self._purge(kind, entity_id, actor)

    def days_until_purge(self, deleted_at: datetime, now: Optional[datetime] = None) -> int:
        return days_until_purge(deleted_at, now=now, retention_days=self.retention_days)

    def list_archived(self, kind: EntityKind, actor: Actor) -> List[Tuple[Any, int]]:
        """Archived rows of *kind*, most recently archived first, with days left."""
        actor.require_manager("view the archive")
        model = self._kind(kind).model
        rows = self.db.scalars(
            select(model).where(model.archived()).order_by(model.deleted_at.desc())
        ).all()
        now = utcnow()
        return [(row, self.days_until_purge(row.deleted_at, now)) for row in rows]

    def sweep_expired(
        self,
        kind: EntityKind,
        actor: Optional[Actor] = None,
        now: Optional[datetime] = None,
    ) -> SweepResult:
        """Purge every archived row of *kind* whose retention has run out.

        ``actor`` is None for the background sweep. Each row is purged in its
        own unit; failures are logged and reported in ``failed``.
        """
        if actor is not None:
            actor.require_manager("clean up the archive")
        purger = actor or Actor.system()
        kind = EntityKind(kind)
        model = self._kind(kind).model
        cutoff = (as_utc(now) if now else utcnow()) - timedelta(days=self.retention_days)

        expired_ids = self.db.scalars(
            select(model.id).where(model.archived(), model.deleted_at <= cutoff)
        ).all()

        result = SweepResult(kind=kind)
        for entity_id in expired_ids:
            try:
                with atomic(self.db):
                    self._purge(kind, entity_id, purger, automatic=True)
                result.count += 1
            except CafeStockError as e:
                result.failed.append(entity_id)
                logger.warning(f"Archive sweep could not purge {kind.value} {entity_id}: {e}")

        if result.count or result.failed:
            logger.info(
                f"Archive sweep ({kind.value}): {result.count} purged, {len(result.failed)} failed"
            )
        return result


def run_archive_sweep() -> Dict[str, Any]:
    """Sweep all entity kinds with a dedicated session.

    Entry point for the periodic background task.
    """
    db = SessionLocal()
    try:
        manager = LifecycleManager(db)
        results = {kind.value: manager.sweep_expired(kind) for kind in EntityKind}
        return {
            "purged": {k: r.count for k, r in results.items()},
            "failed": {k: r.failed for k, r in results.items() if r.failed},
        }
    finally:
        db.close()
