"""Preventive route planning orchestration."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ...data.support_points_repository import get_support_points, resolve_support_point
from ...models.domain import TicketType
from ...persistence.database import (
    find_last_ticket_for_contract,
    get_active_contracts,
    get_clients_by_ids,
    log_system_event,
)
from ...persistence.filesystem import FileStorage
from ...schemas.planning import (
    DayPlanModel,
    PlanningClientModel,
    PreventivePlanRequest,
    PreventivePlanResponse,
    SupportPointModel,
)
from ..outputs.planning_formatter import preventive_plan_to_csv, preventive_plan_to_json
from ..routing.optimizer_client import OptimizerUnavailableError, RouteOptimizerClient
from .due import find_due_clients

logger = logging.getLogger(__name__)

PLAN_FLOW_NAME = "planPreventiveRoutes"
ALL_SECTORS_LABEL = "all sectors"


def list_support_points() -> list[SupportPointModel]:
    return [
        SupportPointModel(id=point.id, name=point.name, address=point.address.one_line())
        for point in get_support_points()
    ]


def _last_contract_visit(client_id: str, sector_id: str) -> Optional[datetime]:
    ticket = find_last_ticket_for_contract(client_id, sector_id, (TicketType.CONTRACT,))
    return ticket.updated_at if ticket else None


def plan_preventive_routes(payload: PreventivePlanRequest, persist: Optional[bool] = None) -> PreventivePlanResponse:
    """Group the clients due for preventive maintenance into daily routes."""
    support_point = resolve_support_point(payload.support_point_id)
    if support_point is None:
        raise LookupError(f"Support point '{payload.support_point_id}' not found.")

    contracts = get_active_contracts()
    clients = {client.id: client for client in get_clients_by_ids(sorted({c.client_id for c in contracts}))}
    due_clients = find_due_clients(
        contracts,
        clients,
        _last_contract_visit,
        payload.period_start,
        payload.period_end,
        sector_id=payload.sector_id,
    )
    if not due_clients:
        raise ValueError("No clients need preventive maintenance in the selected period and sector.")
    logger.info(f"Planning preventive routes for {len(due_clients)} clients from '{support_point.name}'")

    try:
        planner = RouteOptimizerClient()
    except ValueError as e:
        logger.error(f"Route optimizer client initialization failed: {e}")
        raise OptimizerUnavailableError("Route optimizer is not configured. Please check FIELDOPS_OPTIMIZER_BASE_URL.") from e

    sector_name = payload.sector_name or payload.sector_id or ALL_SECTORS_LABEL
    log_system_event(
        payload.requested_by,
        "AI_CALL",
        PLAN_FLOW_NAME,
        {
            "clientCount": len(due_clients),
            "period": {"start": payload.period_start.isoformat(), "end": payload.period_end.isoformat()},
        },
    )
    plan = planner.plan_preventive_routes(
        due_clients,
        support_point.address.one_line(),
        payload.period_start,
        payload.period_end,
        sector_name,
    )

    metadata: dict = {
        "status": "complete",
        "support_point_id": support_point.id,
        "start_address": support_point.address.one_line(),
        "period_start": payload.period_start.isoformat(),
        "period_end": payload.period_end.isoformat(),
        "sector": sector_name,
        "day_count": len(plan.days),
    }
    if payload.run_label:
        metadata["run_label"] = payload.run_label
    if payload.requested_by:
        metadata["author"] = payload.requested_by

    response = PreventivePlanResponse(
        summary=plan.summary,
        days=[
            DayPlanModel(
                day=day.day,
                clients=[PlanningClientModel(id=c.id, name=c.name, address=c.address) for c in day.clients],
            )
            for day in plan.days
        ],
        client_count=len(due_clients),
        metadata=metadata,
    )

    should_persist = payload.persist if persist is None else persist
    if should_persist:
        storage = FileStorage()
        run_dir = storage.save_run(
            "preventive_plan",
            {
                "summary.json": preventive_plan_to_json(response),
                "plan.csv": preventive_plan_to_csv(response),
            },
        )
        response.metadata["output_dir"] = str(run_dir)
    return response
