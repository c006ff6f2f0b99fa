"""Preventive planning endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...persistence.database import DatabaseUnavailableError
from ...schemas.planning import PreventivePlanRequest, PreventivePlanResponse, SupportPointModel
from ...services.planning import list_support_points, plan_preventive_routes
from ...services.routing.optimizer_client import OptimizerResponseError, OptimizerUnavailableError

router = APIRouter(prefix="/planning", tags=["planning"])


@router.get("/support-points", response_model=list[SupportPointModel])
def get_support_points() -> list[SupportPointModel]:
    try:
        return list_support_points()
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/preventive-routes", response_model=PreventivePlanResponse, status_code=status.HTTP_200_OK)
def create_preventive_plan(payload: PreventivePlanRequest) -> PreventivePlanResponse:
    try:
        return plan_preventive_routes(payload)
    except (LookupError, FileNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (OptimizerUnavailableError, DatabaseUnavailableError) as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except OptimizerResponseError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error planning preventive routes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to plan preventive routes: {str(exc)}"
        ) from exc
