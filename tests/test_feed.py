from datetime import date, datetime, timezone

from fieldops.models.domain import Technician, Ticket, TicketClient, TicketStatus
from fieldops.services.routing.feed import RouteBoardFeed, RouteSnapshot, SnapshotSource, reduce_snapshot

TAKEN_AT = datetime(2024, 5, 6, 15, 0, tzinfo=timezone.utc)


def _ticket(tid: str, technician_id: str = "tech-1", en_route: bool = False) -> Ticket:
    return Ticket(
        id=tid,
        status=TicketStatus.IN_PROGRESS,
        client=TicketClient(id=f"client-{tid}", name=f"Client {tid}", address="Rua XV, 5, Centro, Curitiba, PR"),
        created_at=TAKEN_AT,
        updated_at=TAKEN_AT,
        technician_id=technician_id,
        en_route=en_route,
    )


def _snapshot(tickets, route_order=("A", "B")) -> RouteSnapshot:
    technician = Technician(id="tech-1", name="Ana", route_order=tuple(route_order))
    return RouteSnapshot(tickets=tuple(tickets), technicians=(technician,), taken_at=TAKEN_AT)


def test_reduce_snapshot_builds_boards_for_the_snapshot_day():
    boards = reduce_snapshot(_snapshot([_ticket("A"), _ticket("B")]), today=date(2024, 5, 6))

    assert len(boards) == 1
    assert [ticket.id for ticket in boards[0].board.on_route] == ["A", "B"]


def test_feed_recomputes_boards_on_every_snapshot():
    source: SnapshotSource[RouteSnapshot] = SnapshotSource()
    feed = RouteBoardFeed(source)
    received = []
    feed.subscribe(received.append)

    source.publish(_snapshot([_ticket("A"), _ticket("B")]))
    source.publish(_snapshot([_ticket("A"), _ticket("B", en_route=True)]))

    assert len(received) == 2
    assert [ticket.id for ticket in received[0][0].board.on_route] == ["A", "B"]
    assert [ticket.id for ticket in received[1][0].board.on_route] == ["B", "A"]
    assert [ticket.id for ticket in feed.boards[0].board.on_route] == ["B", "A"]


def test_late_subscriber_receives_latest_snapshot():
    source: SnapshotSource[RouteSnapshot] = SnapshotSource()
    source.publish(_snapshot([_ticket("A")]))

    feed = RouteBoardFeed(source)

    assert [entry.technician.id for entry in feed.boards] == ["tech-1"]


def test_closed_feed_stops_listening():
    source: SnapshotSource[RouteSnapshot] = SnapshotSource()
    feed = RouteBoardFeed(source)
    received = []
    feed.subscribe(received.append)

    feed.close()
    source.publish(_snapshot([_ticket("A")]))

    assert received == []
    assert feed.boards == []


def test_unsubscribe_removes_listener():
    source: SnapshotSource[int] = SnapshotSource()
    seen = []
    unsubscribe = source.subscribe(seen.append)

    source.publish(1)
    unsubscribe()
    source.publish(2)

    assert seen == [1]
    assert source.latest == 2
