"""Serializers for preventive route plans."""

from __future__ import annotations

import csv
import io

from ...schemas.planning import PreventivePlanResponse


def preventive_plan_to_json(plan: PreventivePlanResponse) -> dict:
    return plan.model_dump(mode="json")


def preventive_plan_to_csv(plan: PreventivePlanResponse) -> str:
    buffer = io.StringIO()
    fieldnames = ["day", "sequence", "client_id", "client_name", "address"]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for day in plan.days:
        for sequence, client in enumerate(day.clients, start=1):
            writer.writerow(
                {
                    "day": day.day,
                    "sequence": sequence,
                    "client_id": client.id,
                    "client_name": client.name,
                    "address": client.address,
                }
            )
    return buffer.getvalue()
