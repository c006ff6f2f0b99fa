"""Route history endpoints."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, HTTPException, Query, Response, status

from ...schemas.history import RouteHistoryModel
from ...services.routing.service import export_route_history, get_route_history

router = APIRouter(prefix="/history", tags=["history"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/routes", response_model=list[RouteHistoryModel])
def list_route_history(
    technician_id: str | None = Query(default=None, description="Filter by technician"),
    start: date | None = Query(default=None, description="First route date to include"),
    end: date | None = Query(default=None, description="Last route date to include"),
) -> list[RouteHistoryModel]:
    try:
        return get_route_history(technician_id=technician_id, start=start, end=end)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error loading route history: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load route history: {str(exc)}"
        ) from exc


@router.get("/routes/export", status_code=status.HTTP_200_OK)
def download_route_history(
    technician_id: str | None = Query(default=None, description="Filter by technician"),
    start: date | None = Query(default=None, description="First route date to include"),
    end: date | None = Query(default=None, description="Last route date to include"),
) -> Response:
    """Archived routes as an Excel workbook, one row per stop."""
    try:
        content = export_route_history(technician_id=technician_id, start=start, end=end)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error exporting route history: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to export route history: {str(exc)}"
        ) from exc

    file_name = f"route_history_{technician_id}.xlsx" if technician_id else "route_history.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
