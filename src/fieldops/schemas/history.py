"""Route history schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel

from ..models.domain import TicketStatus


class HistoryStopModel(BaseModel):
    sequence: int
    ticket_id: str
    client_name: Optional[str] = None
    status: Optional[TicketStatus] = None


class RouteHistoryModel(BaseModel):
    technician_id: str
    technician_name: str
    route_date: date
    finished_at: Optional[datetime] = None
    stops: List[HistoryStopModel]
