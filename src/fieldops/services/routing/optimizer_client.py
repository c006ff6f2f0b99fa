"""HTTP client for the AI route optimization service."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Any, Sequence

import httpx

from ...config import settings
from .models import DayPlan, GeoPoint, OptimizedRoute, PlanningClient, PreventiveRoutePlan, RouteStopRequest

logger = logging.getLogger(__name__)


class OptimizerUnavailableError(ConnectionError):
    """The optimizer could not be reached or answered with an HTTP error."""


class OptimizerResponseError(ValueError):
    """The optimizer answered with a payload that breaks its contract."""


class RouteOptimizerClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.optimizer_base_url
        if not self.base_url:
            raise ValueError("Route optimizer base URL is not configured.")
        self.api_key = api_key if api_key is not None else settings.optimizer_api_key
        self.timeout = timeout if timeout is not None else settings.optimizer_timeout_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )

    def _post(self, path: str, payload: dict) -> dict:
        # Single attempt: a failed optimization is reported to the user, who can retry.
        with self._get_client() as client:
            try:
                response = client.post(path, json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise OptimizerUnavailableError(
                    f"Route optimizer returned HTTP {exc.response.status_code} for {path}"
                ) from exc
            except httpx.HTTPError as exc:
                raise OptimizerUnavailableError(f"Failed to reach route optimizer at {self.base_url}: {exc}") from exc
        try:
            data = response.json()
        except ValueError as exc:
            raise OptimizerResponseError(f"Route optimizer returned invalid JSON for {path}") from exc
        if not isinstance(data, dict):
            raise OptimizerResponseError(f"Route optimizer returned an unexpected payload for {path}")
        return data

    def optimize_route(self, current_location: GeoPoint, stops: Sequence[RouteStopRequest]) -> OptimizedRoute:
        """Ask the optimizer for a visiting order over ``stops``.

        The answer must list every requested ticket exactly once.
        """
        if not stops:
            raise ValueError("At least one stop is required to optimize a route.")
        payload = {
            "currentLocation": {
                "latitude": current_location.latitude,
                "longitude": current_location.longitude,
            },
            "ticketAddresses": [{"ticketId": stop.ticket_id, "address": stop.address} for stop in stops],
        }
        logger.info(f"Requesting route optimization for {len(stops)} stops")
        data = self._post("/optimize-route", payload)

        raw_stops = data.get("optimizedRoute")
        if not isinstance(raw_stops, list):
            raise OptimizerResponseError("Optimizer response missing 'optimizedRoute'.")
        try:
            ordered = [RouteStopRequest(ticket_id=str(item["ticketId"]), address=str(item.get("address", ""))) for item in raw_stops]
        except (KeyError, TypeError, AttributeError) as exc:
            raise OptimizerResponseError(f"Malformed stop in optimizer response: {exc}") from exc

        result = OptimizedRoute(stops=ordered, explanation=str(data.get("explanation") or ""))
        ensure_permutation([stop.ticket_id for stop in stops], result.ticket_ids)
        return result

    def plan_preventive_routes(
        self,
        clients: Sequence[PlanningClient],
        start_address: str,
        period_start: date,
        period_end: date,
        sector_name: str,
    ) -> PreventiveRoutePlan:
        """Group ``clients`` into daily preventive routes starting from ``start_address``."""
        if not clients:
            raise ValueError("At least one client is required to plan preventive routes.")
        payload = {
            "clients": [{"id": client.id, "name": client.name, "address": client.address} for client in clients],
            "startAddress": start_address,
            "period": {"start": period_start.isoformat(), "end": period_end.isoformat()},
            "sectorName": sector_name,
            "dailyVisitRange": {
                "min": settings.preventive_min_visits_per_day,
                "max": settings.preventive_max_visits_per_day,
            },
        }
        logger.info(f"Requesting preventive route plan for {len(clients)} clients ({sector_name})")
        data = self._post("/plan-preventive-routes", payload)
        plan = _parse_plan(data)
        _warn_outside_visit_band(plan)
        return plan


def ensure_permutation(requested_ids: Sequence[str], returned_ids: Sequence[str]) -> None:
    """Raise when ``returned_ids`` is not a reordering of ``requested_ids``."""
    if Counter(requested_ids) == Counter(returned_ids):
        return
    missing = sorted(set(requested_ids) - set(returned_ids))
    unexpected = sorted(set(returned_ids) - set(requested_ids))
    duplicated = sorted(ticket_id for ticket_id, count in Counter(returned_ids).items() if count > 1)
    raise OptimizerResponseError(
        f"Optimizer returned an inconsistent route (missing={missing}, unexpected={unexpected}, duplicated={duplicated})"
    )


def _parse_plan(data: dict[str, Any]) -> PreventiveRoutePlan:
    raw_days = data.get("suggestedRoutes")
    if not isinstance(raw_days, list):
        raise OptimizerResponseError("Planner response missing 'suggestedRoutes'.")
    days: list[DayPlan] = []
    try:
        for raw_day in raw_days:
            days.append(
                DayPlan(
                    day=int(raw_day["day"]),
                    clients=[
                        PlanningClient(id=str(item["id"]), name=str(item.get("name", "")), address=str(item.get("address", "")))
                        for item in raw_day.get("clients", [])
                    ],
                )
            )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise OptimizerResponseError(f"Malformed day plan in planner response: {exc}") from exc
    return PreventiveRoutePlan(days=days, summary=str(data.get("summary") or ""))


def _warn_outside_visit_band(plan: PreventiveRoutePlan) -> None:
    low = settings.preventive_min_visits_per_day
    high = settings.preventive_max_visits_per_day
    for day in plan.days:
        if not low <= len(day.clients) <= high:
            logger.warning(f"Preventive plan day {day.day} has {len(day.clients)} visits (expected {low}-{high})")


def check_health(base_url: str | None = None) -> bool:
    """Check optimizer service health via its /health endpoint."""
    base = base_url or settings.optimizer_base_url
    if not base:
        return False
    try:
        response = httpx.get(f"{base}/health", timeout=5.0)
        response.raise_for_status()
        return True
    except httpx.HTTPError:
        return False
