"""Export service: inventory, low-stock, history and team reports.

Read-only. ``rows`` builds the tabular data; ``render`` serialises it as
JSON, CSV or an Excel workbook.
"""

import csv
import io
import logging
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from sqlalchemy import select
from sqlalchemy.orm import Session

from cafestock.core.exceptions import ValidationError
from cafestock.db.base import utcnow
from cafestock.models.item import Item, StockStatus, stock_status
from cafestock.models.user import User
from cafestock.services.stock_ledger import StockLedger
from cafestock.services.transaction_log import TransactionLog

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

STATUS_LABELS = {
    StockStatus.OUT: "Out of Stock",
    StockStatus.LOW: "Low Stock",
    StockStatus.MEDIUM: "Medium",
    StockStatus.HEALTHY: "Healthy",
}

# History exports are capped to keep the payload bounded
HISTORY_EXPORT_LIMIT = 10000


class ExportKind(str, Enum):
    INVENTORY = "inventory"
    LOWSTOCK = "lowstock"
    HISTORY = "history"
    TEAM = "team"


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    XLSX = "xlsx"


def _plain(value: Any) -> Any:
    """Convert values to JSON/CSV friendly scalars."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class ExportService:
    """Builds report tables for managers."""

    def __init__(self, db: Session):
        self.db = db

    def _inventory(self, items: List[Item], with_status: bool) -> Tuple[List[str], List[Dict[str, Any]]]:
        headers = ["id", "item_name", "category_name", "unit_name", "current_stock", "minimum_stock"]
        if with_status:
            headers += ["maximum_stock", "stock_status"]
        rows = []
        for item in items:
            row = {
                "id": item.id,
                "item_name": item.name,
                "category_name": item.category_name,
                "unit_name": item.unit_name,
                "current_stock": item.current_stock,
                "minimum_stock": item.minimum_stock,
            }
            if with_status:
                row["maximum_stock"] = item.maximum_stock
                row["stock_status"] = STATUS_LABELS[
                    stock_status(item.current_stock, item.minimum_stock, item.maximum_stock)
                ]
            rows.append(row)
        return headers, rows

    def _history(self) -> Tuple[List[str], List[Dict[str, Any]]]:
        headers = ["id", "transaction_type", "quantity", "notes", "created_at", "item_name", "unit_name", "username"]
        entries = TransactionLog(self.db).recent(HISTORY_EXPORT_LIMIT)
        return headers, [{key: entry[key] for key in headers} for entry in entries]

    def _team(self) -> Tuple[List[str], List[Dict[str, Any]]]:
        headers = ["id", "username", "role", "created_at", "last_login_at"]
        users = self.db.scalars(
            select(User).where(User.active()).order_by(User.created_at.desc(), User.id.desc())
        )
        return headers, [
            {
                "id": user.id,
                "username": user.username,
                "role": user.role,
                "created_at": user.created_at,
                "last_login_at": user.last_login_at,
            }
            for user in users
        ]

    def rows(self, kind: str) -> Tuple[List[str], List[Dict[str, Any]]]:
        """Headers and rows for one report kind."""
        try:
            kind = ExportKind(kind)
        except ValueError:
            raise ValidationError("Invalid export type", detail={"allowed": [k.value for k in ExportKind]})

        ledger = StockLedger(self.db)
        if kind == ExportKind.INVENTORY:
            headers, rows = self._inventory(ledger.list_items(), with_status=True)
        elif kind == ExportKind.LOWSTOCK:
            headers, rows = self._inventory(ledger.list_low_stock(), with_status=False)
        elif kind == ExportKind.HISTORY:
            headers, rows = self._history()
        else:
            headers, rows = self._team()

        rows = [{key: _plain(value) for key, value in row.items()} for row in rows]
        logger.info(f"Export '{kind.value}' built with {len(rows)} row(s)")
        return headers, rows

    def render(self, kind: str, fmt: str = ExportFormat.JSON.value) -> Tuple[Any, str, str]:
        """Return ``(payload, media_type, filename)`` for a report.

        JSON payloads are the row list; CSV is text; XLSX is bytes.
        """
        try:
            fmt = ExportFormat(fmt)
        except ValueError:
            raise ValidationError("Invalid export format", detail={"allowed": [f.value for f in ExportFormat]})

        headers, rows = self.rows(kind)
        kind = ExportKind(kind).value
        filename = f"{kind}_{utcnow().strftime('%Y%m%d_%H%M%S')}.{fmt.value}"

        if fmt == ExportFormat.JSON:
            return rows, "application/json", filename

        if fmt == ExportFormat.CSV:
            output = io.StringIO()
            writer = csv.DictWriter(output, fieldnames=headers, extrasaction="ignore")
            writer.writeheader()
            writer.writerows(rows)
            return output.getvalue(), "text/csv", filename

        wb = Workbook()
        ws = wb.active
        ws.title = kind[:31]  # Max 31 chars
        header_fill = PatternFill(start_color="DDDDDD", end_color="DDDDDD", fill_type="solid")
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = Font(bold=True)
            cell.fill = header_fill
        for row_idx, row in enumerate(rows, 2):
            for col, header in enumerate(headers, 1):
                ws.cell(row=row_idx, column=col, value=row.get(header))

        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue(), XLSX_MEDIA_TYPE, filename
