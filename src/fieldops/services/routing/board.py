"""Per-technician route boards built from a ticket/technician snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from ...models.domain import StopState, Technician, Ticket, TicketStatus
from ..timeutils import local_date
from .sequencer import RouteBoard, sequence_route


@dataclass(slots=True)
class TechnicianBoard:
    technician: Technician
    board: RouteBoard


@dataclass(slots=True)
class OnSiteTechnician:
    technician: Technician
    ticket: Ticket


def is_candidate(ticket: Ticket, today: date, tz_name: str | None = None) -> bool:
    """In-progress tickets, plus tickets completed on the current business day."""
    if ticket.status is TicketStatus.IN_PROGRESS:
        return True
    return ticket.status is TicketStatus.COMPLETED and local_date(ticket.updated_at, tz_name) == today


def scope_candidate_tickets(
    tickets: Iterable[Ticket],
    technician_id: str,
    today: date,
    tz_name: str | None = None,
) -> list[Ticket]:
    return [
        ticket
        for ticket in tickets
        if ticket.technician_id == technician_id and is_candidate(ticket, today, tz_name)
    ]


def build_technician_boards(
    technicians: Sequence[Technician],
    tickets: Sequence[Ticket],
    today: date,
    sector_id: Optional[str] = None,
    tz_name: str | None = None,
) -> list[TechnicianBoard]:
    """Boards for every technician with work in progress or finished today.

    Technicians without candidate tickets are left out, as are technicians
    outside ``sector_id`` when a sector filter is given.
    """
    boards: list[TechnicianBoard] = []
    for technician in technicians:
        if sector_id and sector_id not in technician.sector_ids:
            continue
        candidates = scope_candidate_tickets(tickets, technician.id, today, tz_name)
        if not candidates:
            continue
        boards.append(TechnicianBoard(technician=technician, board=sequence_route(candidates, technician.route_order)))
    return boards


def stop_state(ticket: Ticket) -> StopState:
    if ticket.status is TicketStatus.COMPLETED:
        return StopState.COMPLETED
    if ticket.check_in is not None:
        return StopState.ON_SITE
    if ticket.en_route:
        return StopState.EN_ROUTE
    return StopState.PENDING


def _is_on_site(ticket: Ticket) -> bool:
    return ticket.status is TicketStatus.IN_PROGRESS and ticket.check_in is not None and ticket.check_out is None


def find_on_site_technicians(technicians: Sequence[Technician], tickets: Sequence[Ticket]) -> list[OnSiteTechnician]:
    """Technicians currently checked in at a client, with the ticket they are working on."""
    result: list[OnSiteTechnician] = []
    for technician in technicians:
        current = next(
            (ticket for ticket in tickets if ticket.technician_id == technician.id and _is_on_site(ticket)),
            None,
        )
        if current is not None:
            result.append(OnSiteTechnician(technician=technician, ticket=current))
    return result
