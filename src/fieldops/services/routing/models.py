"""Routing domain models exchanged with the AI optimizer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass(slots=True, frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(slots=True, frozen=True)
class RouteStopRequest:
    ticket_id: str
    address: str


@dataclass(slots=True)
class OptimizedRoute:
    stops: List[RouteStopRequest]
    explanation: str

    @property
    def ticket_ids(self) -> list[str]:
        return [stop.ticket_id for stop in self.stops]


@dataclass(slots=True, frozen=True)
class PlanningClient:
    id: str
    name: str
    address: str


@dataclass(slots=True)
class DayPlan:
    day: int
    clients: List[PlanningClient]


@dataclass(slots=True)
class PreventiveRoutePlan:
    days: List[DayPlan]
    summary: str
