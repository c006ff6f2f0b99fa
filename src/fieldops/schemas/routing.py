"""Routing request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import StopState, TicketStatus, TicketType


class TicketClientModel(BaseModel):
    id: str
    name: str
    phone: str = ""
    address: Optional[str] = None
    is_whats: bool = False


class RouteTicketModel(BaseModel):
    id: str
    status: TicketStatus
    type: TicketType
    client: TicketClientModel
    technician_id: Optional[str] = None
    sector_id: Optional[str] = None
    description: str = ""
    created_at: datetime
    updated_at: datetime
    en_route: bool = False
    en_route_at: Optional[datetime] = None
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    stop_state: StopState


class TechnicianSummaryModel(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    sector_ids: List[str] = Field(default_factory=list)
    route_order: List[str] = Field(default_factory=list)


class TechnicianBoardModel(BaseModel):
    technician: TechnicianSummaryModel
    on_route: List[RouteTicketModel]
    tickets_without_address: List[RouteTicketModel]
    off_route_tickets: List[RouteTicketModel]
    ticket_count: int


class OnSiteTechnicianModel(BaseModel):
    technician: TechnicianSummaryModel
    ticket: RouteTicketModel


class OptimizeRouteRequest(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0, description="Technician's current latitude.")
    longitude: float = Field(..., ge=-180.0, le=180.0, description="Technician's current longitude.")
    requested_by: Optional[str] = Field(default=None, description="User requesting the optimization, for the audit log.")
    persist: bool = Field(
        default=False,
        description="Save the proposed order as the technician's route order right away.",
    )


class OptimizedStopModel(BaseModel):
    ticket_id: str
    address: str


class OptimizeRouteResponse(BaseModel):
    technician_id: str
    explanation: str
    route_order: List[str]
    stops: List[OptimizedStopModel]
    tickets: List[RouteTicketModel]
    saved: bool


class RouteOrderUpdate(BaseModel):
    ticket_ids: List[str] = Field(..., description="Ticket ids in visiting order.")

    @field_validator("ticket_ids")
    @classmethod
    def _no_duplicates(cls, value: List[str]) -> List[str]:
        cleaned = [ticket_id.strip() for ticket_id in value if ticket_id and ticket_id.strip()]
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("ticket_ids must not contain duplicates")
        return cleaned


class ClearRouteResponse(BaseModel):
    success: bool
    archived: bool
    archived_ticket_count: int
