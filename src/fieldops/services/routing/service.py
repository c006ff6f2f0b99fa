"""Routing orchestration service."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime
from typing import Optional, Sequence

from ...models.domain import RouteHistoryEntry, Technician, Ticket, TicketStatus
from ...persistence.database import (
    archive_route,
    get_route_tickets,
    get_technician,
    get_technicians,
    get_tickets_by_ids,
    log_system_event,
    update_technician_route_order,
)
from ...schemas.history import HistoryStopModel, RouteHistoryModel
from ...schemas.routing import (
    ClearRouteResponse,
    OnSiteTechnicianModel,
    OptimizedStopModel,
    OptimizeRouteRequest,
    OptimizeRouteResponse,
    RouteTicketModel,
    TechnicianBoardModel,
    TechnicianSummaryModel,
    TicketClientModel,
)
from ..outputs.history_formatter import route_history_to_xlsx
from ..timeutils import local_date, local_today, utc_now
from .board import TechnicianBoard, build_technician_boards, find_on_site_technicians, scope_candidate_tickets, stop_state
from .models import GeoPoint, RouteStopRequest
from .optimizer_client import OptimizerUnavailableError, RouteOptimizerClient
from .sequencer import sequence_route

logger = logging.getLogger(__name__)

OPTIMIZE_FLOW_NAME = "optimizeTechnicianRoutes"


def _ticket_model(ticket: Ticket) -> RouteTicketModel:
    return RouteTicketModel(
        id=ticket.id,
        status=ticket.status,
        type=ticket.type,
        client=TicketClientModel(**asdict(ticket.client)),
        technician_id=ticket.technician_id,
        sector_id=ticket.sector_id,
        description=ticket.description,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
        en_route=ticket.en_route,
        en_route_at=ticket.en_route_at,
        check_in=ticket.check_in,
        check_out=ticket.check_out,
        stop_state=stop_state(ticket),
    )


def _technician_model(technician: Technician) -> TechnicianSummaryModel:
    return TechnicianSummaryModel(
        id=technician.id,
        name=technician.name,
        email=technician.email,
        sector_ids=list(technician.sector_ids),
        route_order=list(technician.route_order),
    )


def _board_model(entry: TechnicianBoard) -> TechnicianBoardModel:
    board = entry.board
    return TechnicianBoardModel(
        technician=_technician_model(entry.technician),
        on_route=[_ticket_model(ticket) for ticket in board.on_route],
        tickets_without_address=[_ticket_model(ticket) for ticket in board.tickets_without_address],
        off_route_tickets=[_ticket_model(ticket) for ticket in board.off_route_tickets],
        ticket_count=board.ticket_count,
    )


def _require_technician(technician_id: str) -> Technician:
    technician = get_technician(technician_id)
    if technician is None:
        raise LookupError(f"Technician '{technician_id}' not found.")
    return technician


def get_route_boards(sector_id: Optional[str] = None, today: Optional[date] = None) -> list[TechnicianBoardModel]:
    """Route boards for every technician with work in progress or finished today."""
    day = today or local_today()
    technicians = get_technicians()
    tickets = get_route_tickets()
    boards = build_technician_boards(technicians, tickets, day, sector_id=sector_id)
    logger.info(f"Built {len(boards)} route boards from {len(tickets)} tickets (sector={sector_id or 'all'})")
    return [_board_model(entry) for entry in boards]


def get_route_board(technician_id: str, today: Optional[date] = None) -> TechnicianBoardModel:
    day = today or local_today()
    technician = _require_technician(technician_id)
    candidates = scope_candidate_tickets(get_route_tickets(technician_id), technician.id, day)
    board = sequence_route(candidates, technician.route_order)
    return _board_model(TechnicianBoard(technician=technician, board=board))


def get_on_site_technicians() -> list[OnSiteTechnicianModel]:
    on_site = find_on_site_technicians(get_technicians(), get_route_tickets())
    return [
        OnSiteTechnicianModel(technician=_technician_model(item.technician), ticket=_ticket_model(item.ticket))
        for item in on_site
    ]


def propose_route(technician_id: str, payload: OptimizeRouteRequest) -> OptimizeRouteResponse:
    """Ask the AI optimizer for a visiting order over the technician's open tickets.

    Only in-progress tickets with an address are sent. The proposal is saved
    as the technician's route order only when ``payload.persist`` is set; a
    failed optimization leaves the stored order untouched.
    """
    technician = _require_technician(technician_id)
    tickets = [
        ticket
        for ticket in get_route_tickets(technician.id)
        if ticket.status is TicketStatus.IN_PROGRESS and ticket.has_address
    ]
    if not tickets:
        raise ValueError(f"Technician '{technician_id}' has no in-progress tickets with an address to optimize.")

    try:
        optimizer = RouteOptimizerClient()
    except ValueError as e:
        logger.error(f"Route optimizer client initialization failed: {e}")
        raise OptimizerUnavailableError("Route optimizer is not configured. Please check FIELDOPS_OPTIMIZER_BASE_URL.") from e

    log_system_event(
        payload.requested_by,
        "AI_CALL",
        OPTIMIZE_FLOW_NAME,
        {"ticketCount": len(tickets), "technicianId": technician.id},
    )
    result = optimizer.optimize_route(
        GeoPoint(latitude=payload.latitude, longitude=payload.longitude),
        [RouteStopRequest(ticket_id=ticket.id, address=ticket.client.address or "") for ticket in tickets],
    )

    tickets_by_id = {ticket.id: ticket for ticket in tickets}
    ordered_tickets = [tickets_by_id[ticket_id] for ticket_id in result.ticket_ids]

    saved = False
    if payload.persist:
        update_technician_route_order(technician.id, result.ticket_ids)
        saved = True

    return OptimizeRouteResponse(
        technician_id=technician.id,
        explanation=result.explanation,
        route_order=result.ticket_ids,
        stops=[OptimizedStopModel(ticket_id=stop.ticket_id, address=stop.address) for stop in result.stops],
        tickets=[_ticket_model(ticket) for ticket in ordered_tickets],
        saved=saved,
    )


def save_route_order(technician_id: str, ticket_ids: Sequence[str]) -> None:
    technician = _require_technician(technician_id)
    update_technician_route_order(technician.id, list(ticket_ids))


def clear_route(technician_id: str, now: Optional[datetime] = None) -> ClearRouteResponse:
    """Archive the technician's current route order into the history and clear it."""
    technician = _require_technician(technician_id)
    if not technician.route_order:
        update_technician_route_order(technician.id, [])
        return ClearRouteResponse(success=True, archived=False, archived_ticket_count=0)

    finished_at = now or utc_now()
    entry = RouteHistoryEntry(
        date=local_date(finished_at),
        route_order=technician.route_order,
        finished_at=finished_at,
    )
    archive_route(technician, entry)
    return ClearRouteResponse(success=True, archived=True, archived_ticket_count=len(entry.route_order))


def get_route_history(
    technician_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[RouteHistoryModel]:
    """Archived routes, newest first, with each stop resolved to its ticket when it still exists."""
    technicians = [_require_technician(technician_id)] if technician_id else get_technicians()

    selected: list[tuple[Technician, RouteHistoryEntry]] = []
    for technician in technicians:
        for entry in technician.route_history:
            if start and entry.date < start:
                continue
            if end and entry.date > end:
                continue
            selected.append((technician, entry))

    ticket_ids = sorted({ticket_id for _, entry in selected for ticket_id in entry.route_order})
    tickets_by_id = {ticket.id: ticket for ticket in get_tickets_by_ids(ticket_ids)}

    history: list[RouteHistoryModel] = []
    for technician, entry in selected:
        stops = []
        for sequence, ticket_id in enumerate(entry.route_order, start=1):
            ticket = tickets_by_id.get(ticket_id)
            stops.append(
                HistoryStopModel(
                    sequence=sequence,
                    ticket_id=ticket_id,
                    client_name=ticket.client.name if ticket else None,
                    status=ticket.status if ticket else None,
                )
            )
        history.append(
            RouteHistoryModel(
                technician_id=technician.id,
                technician_name=technician.name,
                route_date=entry.date,
                finished_at=entry.finished_at,
                stops=stops,
            )
        )
    history.sort(key=lambda item: item.technician_name)
    history.sort(key=lambda item: item.route_date, reverse=True)
    return history


def export_route_history(
    technician_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> bytes:
    return route_history_to_xlsx(get_route_history(technician_id=technician_id, start=start, end=end))
