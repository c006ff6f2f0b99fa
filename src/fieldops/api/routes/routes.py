"""Technician route board endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Path, Query, status

from ...persistence.database import DatabaseUnavailableError
from ...schemas.routing import (
    ClearRouteResponse,
    OnSiteTechnicianModel,
    OptimizeRouteRequest,
    OptimizeRouteResponse,
    RouteOrderUpdate,
    TechnicianBoardModel,
)
from ...services.routing.optimizer_client import OptimizerResponseError, OptimizerUnavailableError
from ...services.routing.service import (
    clear_route,
    get_on_site_technicians,
    get_route_board,
    get_route_boards,
    propose_route,
    save_route_order,
)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.get("/board", response_model=list[TechnicianBoardModel], status_code=status.HTTP_200_OK)
def list_route_boards(
    sector_id: str | None = Query(default=None, description="Only technicians serving this sector"),
) -> list[TechnicianBoardModel]:
    """Every technician's on-route sequence plus their unrouted in-progress tickets."""
    try:
        return get_route_boards(sector_id=sector_id)
    except Exception as exc:
        logging.exception(f"Error building route boards: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to build route boards: {str(exc)}"
        ) from exc


@router.get("/board/{technician_id}", response_model=TechnicianBoardModel, status_code=status.HTTP_200_OK)
def technician_route_board(technician_id: str = Path(..., description="Technician identifier")) -> TechnicianBoardModel:
    try:
        return get_route_board(technician_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error building route board for technician {technician_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to build route board: {str(exc)}"
        ) from exc


@router.get("/active", response_model=list[OnSiteTechnicianModel], status_code=status.HTTP_200_OK)
def list_on_site_technicians() -> list[OnSiteTechnicianModel]:
    """Technicians that are checked in at a client right now."""
    try:
        return get_on_site_technicians()
    except Exception as exc:
        logging.exception(f"Error listing on-site technicians: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list on-site technicians: {str(exc)}"
        ) from exc


@router.post("/{technician_id}/optimize", response_model=OptimizeRouteResponse, status_code=status.HTTP_200_OK)
def optimize_technician_route(technician_id: str, payload: OptimizeRouteRequest) -> OptimizeRouteResponse:
    try:
        return propose_route(technician_id, payload)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (OptimizerUnavailableError, DatabaseUnavailableError) as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except OptimizerResponseError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing route for technician {technician_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}"
        ) from exc


@router.put("/{technician_id}/order", status_code=status.HTTP_200_OK)
def update_route_order(technician_id: str, payload: RouteOrderUpdate) -> dict:
    """Replace the technician's visiting order, e.g. after a manual reorder."""
    try:
        save_route_order(technician_id, payload.ticket_ids)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DatabaseUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error saving route order for technician {technician_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save route order: {str(exc)}"
        ) from exc
    return {
        "success": True,
        "route_order": payload.ticket_ids,
        "message": f"Route order saved for technician {technician_id}",
    }


@router.post("/{technician_id}/clear", response_model=ClearRouteResponse, status_code=status.HTTP_200_OK)
def clear_technician_route(technician_id: str) -> ClearRouteResponse:
    """Archive the current route into the technician's history and start a blank one."""
    try:
        return clear_route(technician_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DatabaseUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error clearing route for technician {technician_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to clear route: {str(exc)}"
        ) from exc
