import json
from datetime import date

import httpx
import pytest

from fieldops.services.routing.models import GeoPoint, PlanningClient, RouteStopRequest
from fieldops.services.routing.optimizer_client import (
    OptimizerResponseError,
    OptimizerUnavailableError,
    RouteOptimizerClient,
    ensure_permutation,
)

STOPS = [
    RouteStopRequest(ticket_id="T1", address="Rua A, 1, Centro, Campinas, SP"),
    RouteStopRequest(ticket_id="T2", address="Rua B, 2, Centro, Campinas, SP"),
    RouteStopRequest(ticket_id="T3", address="Rua C, 3, Centro, Campinas, SP"),
]


def _client(handler) -> RouteOptimizerClient:
    return RouteOptimizerClient(
        base_url="http://optimizer.test",
        api_key="secret",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


def test_optimize_route_sends_contract_payload_and_parses_order():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "optimizedRoute": [
                    {"ticketId": "T3", "address": STOPS[2].address},
                    {"ticketId": "T1", "address": STOPS[0].address},
                    {"ticketId": "T2", "address": STOPS[1].address},
                ],
                "explanation": "Closest first.",
            },
        )

    result = _client(handler).optimize_route(GeoPoint(latitude=-22.9, longitude=-47.06), STOPS)

    assert captured["path"] == "/optimize-route"
    assert captured["auth"] == "Bearer secret"
    assert captured["body"]["currentLocation"] == {"latitude": -22.9, "longitude": -47.06}
    assert [item["ticketId"] for item in captured["body"]["ticketAddresses"]] == ["T1", "T2", "T3"]
    assert result.ticket_ids == ["T3", "T1", "T2"]
    assert result.explanation == "Closest first."


def test_optimize_route_rejects_response_that_drops_a_ticket():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"optimizedRoute": [{"ticketId": "T1"}, {"ticketId": "T2"}], "explanation": ""},
        )

    with pytest.raises(OptimizerResponseError):
        _client(handler).optimize_route(GeoPoint(latitude=0.0, longitude=0.0), STOPS)


def test_optimize_route_rejects_payload_without_route():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"explanation": "nothing"})

    with pytest.raises(OptimizerResponseError):
        _client(handler).optimize_route(GeoPoint(latitude=0.0, longitude=0.0), STOPS)


def test_http_error_is_reported_as_unavailable():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"error": "overloaded"})

    with pytest.raises(OptimizerUnavailableError):
        _client(handler).optimize_route(GeoPoint(latitude=0.0, longitude=0.0), STOPS)
    assert len(calls) == 1


def test_network_error_is_reported_as_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(OptimizerUnavailableError):
        _client(handler).optimize_route(GeoPoint(latitude=0.0, longitude=0.0), STOPS)


def test_client_requires_base_url(monkeypatch):
    from fieldops.services.routing import optimizer_client

    monkeypatch.setattr(optimizer_client.settings, "optimizer_base_url", None)

    with pytest.raises(ValueError):
        RouteOptimizerClient()


def test_plan_preventive_routes_parses_day_plans():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "suggestedRoutes": [
                    {"day": 1, "clients": [{"id": "c1", "name": "Padaria", "address": "Rua A"}]},
                    {"day": 2, "clients": [{"id": "c2", "name": "Mercado", "address": "Rua B"}]},
                ],
                "summary": "## Plan\nTwo days.",
            },
        )

    clients = [
        PlanningClient(id="c1", name="Padaria", address="Rua A"),
        PlanningClient(id="c2", name="Mercado", address="Rua B"),
    ]
    plan = _client(handler).plan_preventive_routes(
        clients, "Base Central", date(2024, 6, 3), date(2024, 6, 7), "Refrigeration"
    )

    assert captured["path"] == "/plan-preventive-routes"
    assert captured["body"]["startAddress"] == "Base Central"
    assert captured["body"]["period"] == {"start": "2024-06-03", "end": "2024-06-07"}
    assert captured["body"]["sectorName"] == "Refrigeration"
    assert captured["body"]["dailyVisitRange"] == {"min": 4, "max": 6}
    assert [day.day for day in plan.days] == [1, 2]
    assert plan.days[0].clients[0].id == "c1"
    assert plan.summary.startswith("## Plan")


def test_plan_preventive_routes_rejects_malformed_day():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"suggestedRoutes": [{"clients": []}], "summary": ""})

    with pytest.raises(OptimizerResponseError):
        _client(handler).plan_preventive_routes(
            [PlanningClient(id="c1", name="Padaria", address="Rua A")],
            "Base Central",
            date(2024, 6, 3),
            date(2024, 6, 7),
            "Refrigeration",
        )


def test_ensure_permutation_detects_duplicates():
    ensure_permutation(["A", "B"], ["B", "A"])
    with pytest.raises(OptimizerResponseError):
        ensure_permutation(["A", "B"], ["A", "A"])
