"""Snapshot subscriptions feeding the route boards.

Data sources push immutable snapshots of the ticket and technician
collections; ``RouteBoardFeed`` recomputes every board from scratch on each
snapshot with a pure reducer and hands the result to its own listeners.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from threading import Lock
from typing import Callable, Generic, Optional, TypeVar

from ...models.domain import Technician, Ticket
from ..timeutils import local_date, utc_now
from .board import TechnicianBoard, build_technician_boards

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[T], None]
Unsubscribe = Callable[[], None]


@dataclass(slots=True, frozen=True)
class RouteSnapshot:
    tickets: tuple[Ticket, ...]
    technicians: tuple[Technician, ...]
    taken_at: datetime = field(default_factory=utc_now)


class SnapshotSource(Generic[T]):
    """In-process publisher of immutable snapshots."""

    def __init__(self) -> None:
        self._listeners: list[Listener[T]] = []
        self._lock = Lock()
        self._latest: Optional[T] = None

    @property
    def latest(self) -> Optional[T]:
        return self._latest

    def subscribe(self, listener: Listener[T], *, replay: bool = True) -> Unsubscribe:
        """Register ``listener``; the latest snapshot is delivered right away when ``replay`` is set."""
        with self._lock:
            self._listeners.append(listener)
            latest = self._latest
        if replay and latest is not None:
            listener(latest)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, snapshot: T) -> None:
        with self._lock:
            self._latest = snapshot
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)


def reduce_snapshot(
    snapshot: RouteSnapshot,
    today: date | None = None,
    sector_id: Optional[str] = None,
) -> list[TechnicianBoard]:
    """Pure reducer from one snapshot to the boards displayed for it."""
    day = today or local_date(snapshot.taken_at)
    return build_technician_boards(snapshot.technicians, snapshot.tickets, day, sector_id=sector_id)


class RouteBoardFeed:
    """Keeps route boards in step with a snapshot source."""

    def __init__(self, source: SnapshotSource[RouteSnapshot], sector_id: Optional[str] = None) -> None:
        self.sector_id = sector_id
        self._boards = SnapshotSource[list[TechnicianBoard]]()
        self._unsubscribe: Optional[Unsubscribe] = source.subscribe(self._on_snapshot)

    @property
    def boards(self) -> list[TechnicianBoard]:
        return list(self._boards.latest or [])

    def subscribe(self, listener: Listener[list[TechnicianBoard]]) -> Unsubscribe:
        return self._boards.subscribe(listener)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_snapshot(self, snapshot: RouteSnapshot) -> None:
        boards = reduce_snapshot(snapshot, sector_id=self.sector_id)
        logger.debug(
            "Recomputed %d route boards from snapshot taken at %s", len(boards), snapshot.taken_at.isoformat()
        )
        self._boards.publish(boards)
