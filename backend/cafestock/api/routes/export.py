"""Report export routes."""

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, Response

from cafestock.core.rate_limit import limiter
from cafestock.core.rbac import RequireManager
from cafestock.db.session import DbSession
from cafestock.services.export_service import ExportFormat, ExportService

router = APIRouter()


@router.get("/")
@limiter.limit("10/minute")
def export_report(
    request: Request,
    db: DbSession,
    current_user: RequireManager,
    type: str = Query(..., description="inventory | lowstock | history | team"),
    format: str = Query(ExportFormat.JSON.value, description="json | csv | xlsx"),
):
    """Export a report as JSON rows, CSV or an Excel workbook."""
    payload, media_type, filename = ExportService(db).render(type, format)
    if format == ExportFormat.JSON.value:
        return JSONResponse(content=payload)
    return Response(
        content=payload,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
