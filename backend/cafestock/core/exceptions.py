"""Domain errors raised by the inventory core.

Every core operation either returns a value or raises exactly one of these.
The HTTP layer maps them to status codes in ``cafestock.main``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, List, Optional


class CafeStockError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str, detail: Any = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ValidationError(CafeStockError):
    """Malformed or missing input."""


class DuplicateNameError(CafeStockError):
    """Name already held by an active row of the same kind."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f'An active {kind} named "{name}" already exists')


class NotFoundError(CafeStockError):
    """Entity absent, or in the wrong lifecycle state for the operation."""

    def __init__(self, kind: str, entity_id: Optional[int] = None, message: Optional[str] = None):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(message or f"{kind.capitalize()} not found")


@dataclass
class Shortfall:
    """Deficit for one item found during a deduction pre-check."""

    item_id: int
    item: str
    required: Decimal
    available: Decimal
    unit: Optional[str]

    def to_dict(self) -> dict:
        data = asdict(self)
        data["required"] = float(self.required)
        data["available"] = float(self.available)
        return data


class InsufficientStockError(CafeStockError):
    """Raised when a deduction would drive stock below zero."""

    def __init__(self, shortfalls: List[Shortfall]):
        self.shortfalls = shortfalls
        names = ", ".join(s.item for s in shortfalls)
        super().__init__(
            f"Insufficient stock for: {names}",
            detail=[s.to_dict() for s in shortfalls],
        )


class AlreadyOrderedError(CafeStockError):
    """Item is already flagged as on order."""

    def __init__(self, item_name: str):
        super().__init__(f'"{item_name}" is already marked as ordered')


class ForbiddenError(CafeStockError):
    """Role or ownership check failed."""


class StorageError(CafeStockError):
    """Opaque failure from the underlying store."""
