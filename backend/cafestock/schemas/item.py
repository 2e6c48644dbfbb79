"""Inventory item schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from cafestock.models.transaction import TransactionType


class ItemCreate(BaseModel):
    """Item creation schema. Required fields are enforced by the ledger."""

    name: Optional[str] = Field(None, max_length=255)
    category_id: Optional[int] = None
    unit_id: Optional[int] = None
    current_stock: Optional[float] = None
    minimum_stock: Optional[float] = None
    maximum_stock: Optional[float] = None
    description: Optional[str] = None


class ItemUpdate(ItemCreate):
    """Item update schema (full replacement)."""


class StockAdjustment(BaseModel):
    """Signed stock change."""

    delta: float
    transaction_type: TransactionType = TransactionType.UPDATE
    notes: Optional[str] = Field(None, max_length=500)


class StockAdjustmentResponse(BaseModel):
    item_id: int
    current_stock: float


class ItemResponse(BaseModel):
    """Item with derived status."""

    id: int
    name: str
    category_id: int
    category_name: Optional[str] = None
    unit_id: int
    unit_name: Optional[str] = None
    current_stock: float
    minimum_stock: float
    maximum_stock: float
    ordered: bool
    description: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
