"""Spreadsheet export of archived technician routes."""

from __future__ import annotations

import io
from typing import Sequence

from openpyxl import Workbook
from openpyxl.styles import Font

from ...schemas.history import RouteHistoryModel

HEADER = [
    "date",
    "technician_id",
    "technician_name",
    "sequence",
    "ticket_id",
    "client_name",
    "status",
    "finished_at",
]


def route_history_to_xlsx(history: Sequence[RouteHistoryModel]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Route history"
    sheet.append(HEADER)
    for cell in sheet[1]:
        cell.font = Font(bold=True)

    for route in history:
        finished_at = route.finished_at.isoformat() if route.finished_at else ""
        for stop in route.stops:
            sheet.append(
                [
                    route.route_date.isoformat(),
                    route.technician_id,
                    route.technician_name,
                    stop.sequence,
                    stop.ticket_id,
                    stop.client_name or "",
                    stop.status.value if stop.status else "",
                    finished_at,
                ]
            )

    sheet.freeze_panes = "A2"
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
