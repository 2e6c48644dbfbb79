"""Ordering routes: flag items as ordered and receive deliveries."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from cafestock.core.rate_limit import limiter
from cafestock.core.rbac import RequireManager
from cafestock.core.validators import PositiveIntId
from cafestock.db.session import DbSession
from cafestock.schemas.item import ItemResponse
from cafestock.services.ordering import OrderingService

router = APIRouter()


class RestockRequest(BaseModel):
    quantity: float | None = None


@router.patch("/{item_id}/order", response_model=ItemResponse)
@limiter.limit("30/minute")
def mark_ordered(request: Request, item_id: PositiveIntId, db: DbSession, current_user: RequireManager):
    """Flag an item as on order."""
    return OrderingService(db).mark_ordered(item_id, current_user)


@router.post("/{item_id}/restock", response_model=ItemResponse)
@limiter.limit("30/minute")
def restock(
    request: Request, item_id: PositiveIntId, body: RestockRequest, db: DbSession, current_user: RequireManager
):
    """Receive a delivery: add stock and clear the ordered flag."""
    return OrderingService(db).restock(item_id, body.quantity, current_user)
