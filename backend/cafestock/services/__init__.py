# Services module

from cafestock.models.item import StockStatus, stock_status
from cafestock.services.transaction_log import TransactionLog
from cafestock.services.lifecycle import (
    EntityKind,
    LifecycleManager,
    SweepResult,
    days_until_purge,
    run_archive_sweep,
)
from cafestock.services.stock_ledger import StockLedger
from cafestock.services.recipe_deduction import RecipeDeductionService, UsageResult
from cafestock.services.recipe_service import RecipeService
from cafestock.services.ordering import OrderingService
from cafestock.services.team_service import TeamService
from cafestock.services.export_service import ExportService

__all__ = [
    "TransactionLog",
    "EntityKind",
    "LifecycleManager",
    "SweepResult",
    "days_until_purge",
    "run_archive_sweep",
    "StockLedger",
    "StockStatus",
    "stock_status",
    "RecipeDeductionService",
    "UsageResult",
    "RecipeService",
    "OrderingService",
    "TeamService",
    "ExportService",
]
