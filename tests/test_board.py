from datetime import date, datetime, timezone

from fieldops.models.domain import StopState, Technician, Ticket, TicketClient, TicketStatus
from fieldops.services.routing.board import (
    build_technician_boards,
    find_on_site_technicians,
    is_candidate,
    scope_candidate_tickets,
    stop_state,
)

TZ = "America/Sao_Paulo"
TODAY = date(2024, 5, 6)


def _ticket(
    tid: str,
    technician_id: str = "tech-1",
    status: TicketStatus = TicketStatus.IN_PROGRESS,
    updated_at: datetime = datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc),
    **kwargs,
) -> Ticket:
    return Ticket(
        id=tid,
        status=status,
        client=TicketClient(id=f"client-{tid}", name=f"Client {tid}", address="Av. Brasil, 100, Centro, Campinas, SP"),
        created_at=datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc),
        updated_at=updated_at,
        technician_id=technician_id,
        **kwargs,
    )


def _technician(tid: str, route_order=(), sector_ids=("sector-a",)) -> Technician:
    return Technician(id=tid, name=f"Tech {tid}", route_order=tuple(route_order), sector_ids=tuple(sector_ids))


def test_completed_ticket_counts_on_the_local_business_day():
    # 01:00 UTC on the 7th is still the evening of the 6th in Sao Paulo.
    late_evening = _ticket("A", status=TicketStatus.COMPLETED, updated_at=datetime(2024, 5, 7, 1, 0, tzinfo=timezone.utc))
    yesterday = _ticket("B", status=TicketStatus.COMPLETED, updated_at=datetime(2024, 5, 5, 15, 0, tzinfo=timezone.utc))

    assert is_candidate(late_evening, TODAY, TZ)
    assert not is_candidate(yesterday, TODAY, TZ)


def test_pending_and_canceled_tickets_are_never_candidates():
    assert not is_candidate(_ticket("A", status=TicketStatus.PENDING), TODAY, TZ)
    assert not is_candidate(_ticket("B", status=TicketStatus.CANCELED), TODAY, TZ)
    assert is_candidate(_ticket("C"), TODAY, TZ)


def test_scope_candidate_tickets_filters_by_technician():
    tickets = [_ticket("A"), _ticket("B", technician_id="tech-2")]

    scoped = scope_candidate_tickets(tickets, "tech-1", TODAY, TZ)

    assert [ticket.id for ticket in scoped] == ["A"]


def test_build_technician_boards_skips_idle_technicians_and_other_sectors():
    technicians = [
        _technician("tech-1", route_order=["B", "A"]),
        _technician("tech-2"),
        _technician("tech-3", sector_ids=["sector-b"]),
    ]
    tickets = [_ticket("A"), _ticket("B"), _ticket("C", technician_id="tech-3")]

    boards = build_technician_boards(technicians, tickets, TODAY, sector_id="sector-a", tz_name=TZ)

    assert [entry.technician.id for entry in boards] == ["tech-1"]
    assert [ticket.id for ticket in boards[0].board.on_route] == ["B", "A"]


def test_stop_state_reflects_ticket_progress():
    now = datetime(2024, 5, 6, 13, 0, tzinfo=timezone.utc)

    assert stop_state(_ticket("A", status=TicketStatus.COMPLETED)) is StopState.COMPLETED
    assert stop_state(_ticket("B", check_in=now, en_route=True)) is StopState.ON_SITE
    assert stop_state(_ticket("C", en_route=True)) is StopState.EN_ROUTE
    assert stop_state(_ticket("D")) is StopState.PENDING


def test_find_on_site_technicians_requires_open_check_in():
    now = datetime(2024, 5, 6, 13, 0, tzinfo=timezone.utc)
    technicians = [_technician("tech-1"), _technician("tech-2"), _technician("tech-3")]
    tickets = [
        _ticket("A", technician_id="tech-1", check_in=now),
        _ticket("B", technician_id="tech-2", check_in=now, check_out=now),
        _ticket("C", technician_id="tech-3", en_route=True),
    ]

    on_site = find_on_site_technicians(technicians, tickets)

    assert [(item.technician.id, item.ticket.id) for item in on_site] == [("tech-1", "A")]
