"""Endpoints triggered by the external scheduler."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...persistence.database import DatabaseUnavailableError
from ...schemas.planning import PreventiveRunResponse
from ...services.planning import generate_preventive_tickets

router = APIRouter(prefix="/cron", tags=["cron"])


@router.get("/preventive-tickets", response_model=PreventiveRunResponse, status_code=status.HTTP_200_OK)
def run_preventive_tickets() -> PreventiveRunResponse:
    """Open a pending contract ticket for every client whose preventive visit is due."""
    try:
        result = generate_preventive_tickets()
    except DatabaseUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error generating preventive tickets: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate preventive tickets: {str(exc)}"
        ) from exc
    return PreventiveRunResponse(
        message=result.message,
        created_tickets_count=result.created_tickets_count,
        checked_clients_count=result.checked_clients_count,
        created_ticket_ids=result.created_ticket_ids,
    )
