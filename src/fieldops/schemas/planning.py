"""Preventive planning schemas."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class SupportPointModel(BaseModel):
    id: str
    name: str
    address: str


class PreventivePlanRequest(BaseModel):
    support_point_id: str = Field(..., description="Support point the first day starts from.")
    period_start: date
    period_end: date
    sector_id: Optional[str] = Field(default=None, description="Restrict planning to one sector.")
    sector_name: Optional[str] = Field(default=None, description="Sector label passed to the planner.")
    requested_by: Optional[str] = Field(default=None, description="Person or system requesting the plan.")
    persist: bool = False
    run_label: Optional[str] = Field(default=None, description="Friendly name for persisted outputs.")

    @model_validator(mode="after")
    def _check_period(self) -> "PreventivePlanRequest":
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class PlanningClientModel(BaseModel):
    id: str
    name: str
    address: str


class DayPlanModel(BaseModel):
    day: int
    clients: List[PlanningClientModel]


class PreventivePlanResponse(BaseModel):
    summary: str
    days: List[DayPlanModel]
    client_count: int
    metadata: dict


class PreventiveRunResponse(BaseModel):
    message: str
    created_tickets_count: int
    checked_clients_count: int
    created_ticket_ids: List[str] = Field(default_factory=list)
