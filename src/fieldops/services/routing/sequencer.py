"""Display ordering for a technician's route.

The sequencer is a pure function over a snapshot of one technician's tickets
and the technician's persisted route order. It never mutates its inputs and
never raises: whatever the data layer hands over is treated as already
validated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from ...models.domain import Ticket, TicketStatus


@dataclass(slots=True)
class RouteBoard:
    """The three ticket lists rendered on a technician's route card."""

    on_route: list[Ticket] = field(default_factory=list)
    tickets_without_address: list[Ticket] = field(default_factory=list)
    off_route_tickets: list[Ticket] = field(default_factory=list)

    @property
    def ticket_count(self) -> int:
        return len(self.on_route) + len(self.tickets_without_address) + len(self.off_route_tickets)


def normalize_route_order(route_order: object) -> tuple[str, ...]:
    """Coerce a stored route order into a tuple of ticket ids.

    Anything that is not a list/tuple of ids is treated as an empty order.
    """
    if not isinstance(route_order, (list, tuple)):
        return ()
    return tuple(str(ticket_id) for ticket_id in route_order if isinstance(ticket_id, str) and ticket_id)


def is_on_route(ticket: Ticket, route_ids: set[str] | frozenset[str]) -> bool:
    """A ticket belongs to the planned route when it is ordered or being travelled to.

    Completed tickets qualify under the same two conditions.
    """
    return ticket.id in route_ids or ticket.en_route


def _order_tickets(tickets: list[Ticket], route_order: Sequence[str]) -> list[Ticket]:
    if route_order:
        position = {}
        for index, ticket_id in enumerate(route_order):
            position.setdefault(ticket_id, index)
        # Unknown ids share one sort bucket after every known id, so the
        # stable sort keeps their relative input order.
        return sorted(tickets, key=lambda ticket: (0, position[ticket.id]) if ticket.id in position else (1, 0))
    return sorted(tickets, key=lambda ticket: ticket.created_at)


def _last_completed_index(tickets: Sequence[Ticket]) -> int:
    for index in range(len(tickets) - 1, -1, -1):
        if tickets[index].status is TicketStatus.COMPLETED:
            return index
    return -1


def _place_en_route_ticket(ordered: list[Ticket], en_route_id: Optional[str]) -> list[Ticket]:
    if en_route_id is None:
        return ordered
    en_route_index = next((index for index, ticket in enumerate(ordered) if ticket.id == en_route_id), None)
    if en_route_index is None:
        return ordered

    if en_route_index == _last_completed_index(ordered) + 1:
        return ordered

    en_route_ticket = ordered[en_route_index]
    remaining = ordered[:en_route_index] + ordered[en_route_index + 1 :]
    insert_at = _last_completed_index(remaining) + 1
    return remaining[:insert_at] + [en_route_ticket] + remaining[insert_at:]


def sequence_route(
    candidate_tickets: Iterable[Ticket],
    route_order: Optional[Sequence[str]] = None,
) -> RouteBoard:
    """Compute the display order of a technician's visits.

    ``candidate_tickets`` must already be scoped to the technician's
    in-progress tickets plus those completed today. The ticket currently being
    travelled to always ends up directly after the last completed stop, even
    when the stored ``route_order`` lags behind live progress.
    """
    tickets = list(candidate_tickets)
    order = normalize_route_order(route_order)
    route_ids = frozenset(order)

    on_route = [ticket for ticket in tickets if is_on_route(ticket, route_ids)]
    # Only one en-route ticket per technician is expected; the first one wins.
    en_route_id = next((ticket.id for ticket in on_route if ticket.en_route), None)
    on_route = _place_en_route_ticket(_order_tickets(on_route, order), en_route_id)

    on_route_ids = {ticket.id for ticket in on_route}
    others = [
        ticket
        for ticket in tickets
        if ticket.status is TicketStatus.IN_PROGRESS and ticket.id not in on_route_ids
    ]
    return RouteBoard(
        on_route=on_route,
        tickets_without_address=[ticket for ticket in others if not ticket.has_address],
        off_route_tickets=[ticket for ticket in others if ticket.has_address],
    )
