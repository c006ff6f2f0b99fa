"""Route group exports."""

from . import cron, health, history, planning, routes

__all__ = ["routes", "history", "planning", "cron", "health"]
