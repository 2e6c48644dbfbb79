"""Inventory routes: items, stock changes, usage logging and activity feeds."""

from typing import List, Optional

from fastapi import APIRouter, Query, Request, status

from cafestock.core.config import settings
from cafestock.core.rate_limit import limiter
from cafestock.core.rbac import CurrentUser, RequireManager
from cafestock.core.responses import paginated_response
from cafestock.core.validators import PositiveIntId
from cafestock.db.session import DbSession
from cafestock.models.transaction import TransactionType
from cafestock.schemas.archive import ArchivedEntry, CleanupResponse, MessageResponse
from cafestock.schemas.item import (
    ItemCreate,
    ItemResponse,
    ItemUpdate,
    StockAdjustment,
    StockAdjustmentResponse,
)
from cafestock.schemas.transaction import TransactionResponse
from cafestock.schemas.usage import ManualUsageRequest, RecipeUsageRequest, UsageResponse
from cafestock.services.lifecycle import EntityKind, LifecycleManager
from cafestock.services.recipe_deduction import RecipeDeductionService
from cafestock.services.stock_ledger import StockLedger
from cafestock.services.transaction_log import TransactionLog

router = APIRouter()


@router.get("/", response_model=List[ItemResponse])
@limiter.limit("60/minute")
def list_items(request: Request, db: DbSession, current_user: CurrentUser):
    """List active items with their stock status."""
    return StockLedger(db).list_items()


@router.get("/low-stock", response_model=List[ItemResponse])
@limiter.limit("60/minute")
def list_low_stock(request: Request, db: DbSession, current_user: CurrentUser):
    return StockLedger(db).list_low_stock()


@router.get("/recent-activity", response_model=List[TransactionResponse])
@limiter.limit("60/minute")
def recent_activity(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    limit: int = Query(settings.recent_activity_limit, ge=1, le=100),
):
    """The caller's own most recent transactions."""
    return TransactionLog(db).recent_for_user(current_user.user_id, limit)


@router.get("/recent-activity-all", response_model=List[TransactionResponse])
@limiter.limit("60/minute")
def recent_activity_all(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    limit: int = Query(settings.recent_activity_limit, ge=1, le=100),
):
    """Most recent transactions across the team."""
    return TransactionLog(db).recent(limit)


@router.get("/transactions/all")
@limiter.limit("30/minute")
def all_transactions(
    request: Request,
    db: DbSession,
    current_user: RequireManager,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    transaction_type: Optional[TransactionType] = Query(None),
):
    """Full transaction history, newest first."""
    rows, total = TransactionLog(db).list_all(current_user, skip, limit, transaction_type)
    items = [TransactionResponse(**row).model_dump(mode="json") for row in rows]
    return paginated_response(items, total, skip, limit)


@router.get("/archived", response_model=List[ArchivedEntry])
@limiter.limit("30/minute")
def list_archived_items(request: Request, db: DbSession, current_user: RequireManager):
    return [
        ArchivedEntry(id=item.id, name=item.name, deleted_at=item.deleted_at, days_until_purge=days)
        for item, days in LifecycleManager(db).list_archived(EntityKind.ITEM, current_user)
    ]


@router.post("/cleanup-archived", response_model=CleanupResponse)
@limiter.limit("10/minute")
def cleanup_archived_items(request: Request, db: DbSession, current_user: RequireManager):
    """Purge archived items past the retention period."""
    result = LifecycleManager(db).sweep_expired(EntityKind.ITEM, current_user)
    return CleanupResponse(
        message=f"Permanently deleted {result.count} expired item(s)",
        count=result.count,
        failed=result.failed,
    )


@router.post("/log-recipe-usage", response_model=UsageResponse)
@limiter.limit("30/minute")
def log_recipe_usage(request: Request, body: RecipeUsageRequest, db: DbSession, current_user: CurrentUser):
    """Deduct every ingredient of a recipe for the given servings."""
    result = RecipeDeductionService(db).log_recipe_usage(body.recipe_id, body.servings, current_user)
    return UsageResponse(message="Recipe usage logged successfully", items_updated=result.items_updated)


@router.post("/log-manual-usage", response_model=UsageResponse)
@limiter.limit("30/minute")
def log_manual_usage(request: Request, body: ManualUsageRequest, db: DbSession, current_user: CurrentUser):
    entries = [entry.model_dump() for entry in body.items]
    result = RecipeDeductionService(db).log_manual_usage(entries, current_user)
    return UsageResponse(message="Manual usage logged successfully", items_updated=result.items_updated)


@router.post("/", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_item(request: Request, body: ItemCreate, db: DbSession, current_user: RequireManager):
    return StockLedger(db).create_item(current_user, **body.model_dump())


@router.get("/{item_id}", response_model=ItemResponse)
@limiter.limit("60/minute")
def get_item(request: Request, item_id: PositiveIntId, db: DbSession, current_user: CurrentUser):
    return StockLedger(db).get_item(item_id)


@router.put("/{item_id}", response_model=ItemResponse)
@limiter.limit("30/minute")
def update_item(
    request: Request, item_id: PositiveIntId, body: ItemUpdate, db: DbSession, current_user: RequireManager
):
    return StockLedger(db).update_item(item_id, current_user, **body.model_dump())


@router.post("/{item_id}/adjust", response_model=StockAdjustmentResponse)
@limiter.limit("30/minute")
def adjust_stock(
    request: Request, item_id: PositiveIntId, body: StockAdjustment, db: DbSession, current_user: CurrentUser
):
    """Apply a signed stock change. Non-usage adjustments need a manager."""
    new_quantity = StockLedger(db).adjust_stock(
        item_id, body.delta, body.transaction_type, body.notes, current_user
    )
    return StockAdjustmentResponse(item_id=item_id, current_stock=new_quantity)


@router.delete("/{item_id}", response_model=MessageResponse)
@limiter.limit("30/minute")
def archive_item(request: Request, item_id: PositiveIntId, db: DbSession, current_user: RequireManager):
    StockLedger(db).archive_item(item_id, current_user)
    return {"message": "Item archived"}


@router.post("/{item_id}/restore", response_model=MessageResponse)
@limiter.limit("30/minute")
def restore_item(request: Request, item_id: PositiveIntId, db: DbSession, current_user: RequireManager):
    StockLedger(db).restore_item(item_id, current_user)
    return {"message": "Item restored"}


@router.delete("/{item_id}/permanent", response_model=MessageResponse)
@limiter.limit("30/minute")
def purge_item(request: Request, item_id: PositiveIntId, db: DbSession, current_user: RequireManager):
    StockLedger(db).purge_item(item_id, current_user)
    return {"message": "Item permanently deleted"}
