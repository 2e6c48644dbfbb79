"""Transaction log schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class TransactionResponse(BaseModel):
    """Audit row joined with entity names."""

    id: int
    transaction_type: str
    quantity: Optional[float] = None
    notes: Optional[str] = None
    created_at: datetime
    item_id: Optional[int] = None
    recipe_id: Optional[int] = None
    user_id: Optional[int] = None
    item_name: Optional[str] = None
    recipe_name: Optional[str] = None
    unit_name: Optional[str] = None
    username: Optional[str] = None
