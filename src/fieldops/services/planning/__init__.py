"""Preventive maintenance planning helpers."""

from .due import find_due_clients, next_due_date
from .preventive_tickets import PreventiveRunResult, generate_preventive_tickets
from .service import list_support_points, plan_preventive_routes

__all__ = [
    "find_due_clients",
    "next_due_date",
    "generate_preventive_tickets",
    "PreventiveRunResult",
    "list_support_points",
    "plan_preventive_routes",
]
