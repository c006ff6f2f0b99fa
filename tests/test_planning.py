import json
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from fieldops.models.domain import Address, Client, ServiceContract, SupportPoint, Ticket, TicketClient, TicketStatus, TicketType
from fieldops.schemas.planning import PreventivePlanRequest
from fieldops.services.planning import due, find_due_clients, next_due_date
from fieldops.services.planning import service as planning_service
from fieldops.services.routing.models import DayPlan, PreventiveRoutePlan
from fieldops.services.routing.optimizer_client import OptimizerUnavailableError

PERIOD_START = date(2024, 6, 3)
PERIOD_END = date(2024, 6, 7)


def _address(street: str) -> Address:
    return Address(street=street, number="10", neighborhood="Centro", city="Campinas", state="SP")


def _client(cid: str, address: Address | None = None) -> Client:
    return Client(id=cid, name=f"Client {cid}", address=address or _address(f"Rua {cid}"))


def _contract(cid: str, frequency_days: int = 30, sectors=("refrigeration",), status: str = "active") -> ServiceContract:
    return ServiceContract(id=f"contract-{cid}", client_id=cid, sector_ids=tuple(sectors), frequency_days=frequency_days, status=status)


def _visited(day: date):
    return datetime(day.year, day.month, day.day, 15, 0, tzinfo=timezone.utc)


def test_next_due_date_adds_frequency_to_last_visit():
    assert next_due_date(_visited(date(2024, 5, 10)), 30) == date(2024, 6, 9)
    assert next_due_date(None, 30) is None


def test_find_due_clients_includes_overdue_and_never_visited():
    contracts = [_contract("due"), _contract("overdue"), _contract("new"), _contract("later")]
    clients = {cid: _client(cid) for cid in ("due", "overdue", "new", "later")}
    visits = {
        "due": _visited(date(2024, 5, 6)),
        "overdue": _visited(date(2024, 3, 1)),
        "later": _visited(date(2024, 5, 30)),
    }

    selected = find_due_clients(contracts, clients, lambda cid, sid: visits.get(cid), PERIOD_START, PERIOD_END)

    assert [item.id for item in selected] == ["due", "overdue", "new"]
    assert selected[0].address == "Rua due, 10, Centro, Campinas, SP"


def test_find_due_clients_skips_inactive_addressless_and_other_sectors():
    contracts = [
        _contract("inactive", status="suspended"),
        _contract("no-address"),
        _contract("electrical", sectors=("electrical",)),
        _contract("both", sectors=("electrical", "refrigeration")),
    ]
    clients = {
        "inactive": _client("inactive"),
        "no-address": Client(id="no-address", name="No address"),
        "electrical": _client("electrical"),
        "both": _client("both"),
    }

    selected = find_due_clients(
        contracts, clients, lambda cid, sid: None, PERIOD_START, PERIOD_END, sector_id="refrigeration"
    )

    assert [item.id for item in selected] == ["both"]


def test_find_due_clients_lists_each_client_once():
    contracts = [_contract("dup", sectors=("a", "b")), _contract("dup", sectors=("c",))]

    selected = find_due_clients(contracts, {"dup": _client("dup")}, lambda cid, sid: None, PERIOD_START, PERIOD_END)

    assert [item.id for item in selected] == ["dup"]


def test_find_due_clients_rejects_inverted_period():
    with pytest.raises(ValueError):
        find_due_clients([], {}, lambda cid, sid: None, PERIOD_END, PERIOD_START)


class DummyPlanner:
    def __init__(self):
        self.calls = []

    def plan_preventive_routes(self, clients, start_address, period_start, period_end, sector_name):
        self.calls.append((list(clients), start_address, sector_name))
        return PreventiveRoutePlan(
            days=[DayPlan(day=1, clients=list(clients))],
            summary="## Week plan",
        )


@pytest.fixture
def planning_store(monkeypatch, tmp_path: Path):
    support_point = SupportPoint(id="base-central", name="Base Central", address=_address("Av. Norte"))
    planner = DummyPlanner()
    events = []

    monkeypatch.setattr(
        planning_service,
        "resolve_support_point",
        lambda support_point_id: support_point if support_point_id == support_point.id else None,
    )
    monkeypatch.setattr(planning_service, "get_active_contracts", lambda: [_contract("c1"), _contract("c2")])
    monkeypatch.setattr(planning_service, "get_clients_by_ids", lambda ids: [_client(cid) for cid in ids])
    monkeypatch.setattr(planning_service, "find_last_ticket_for_contract", lambda cid, sid, types: None)
    monkeypatch.setattr(planning_service, "log_system_event", lambda *args: events.append(args))
    monkeypatch.setattr(planning_service, "RouteOptimizerClient", lambda: planner)
    original_storage = planning_service.FileStorage
    monkeypatch.setattr(planning_service, "FileStorage", lambda: original_storage(root=tmp_path))
    return {"planner": planner, "events": events, "tmp_path": tmp_path}


def _request(**overrides) -> PreventivePlanRequest:
    values = {
        "support_point_id": "base-central",
        "period_start": PERIOD_START,
        "period_end": PERIOD_END,
        "sector_name": "Refrigeration",
    }
    values.update(overrides)
    return PreventivePlanRequest(**values)


def test_plan_preventive_routes_calls_planner_with_due_clients(planning_store):
    response = planning_service.plan_preventive_routes(_request(requested_by="planner-1"))

    clients, start_address, sector_name = planning_store["planner"].calls[0]
    assert [client.id for client in clients] == ["c1", "c2"]
    assert start_address == "Av. Norte, 10, Centro, Campinas, SP"
    assert sector_name == "Refrigeration"
    assert response.client_count == 2
    assert response.summary == "## Week plan"
    assert response.metadata["author"] == "planner-1"
    assert planning_store["events"][0][1:3] == ("AI_CALL", "planPreventiveRoutes")
    assert not (planning_store["tmp_path"] / "outputs").exists()


def test_plan_preventive_routes_persists_outputs(planning_store):
    response = planning_service.plan_preventive_routes(_request(persist=True, run_label="June"))

    run_dirs = list((planning_store["tmp_path"] / "outputs").iterdir())
    assert len(run_dirs) == 1
    summary = json.loads((run_dirs[0] / "summary.json").read_text(encoding="utf-8"))
    assert summary["client_count"] == 2
    csv_lines = (run_dirs[0] / "plan.csv").read_text(encoding="utf-8").splitlines()
    assert csv_lines[0] == "day,sequence,client_id,client_name,address"
    assert len(csv_lines) == 3
    assert response.metadata["output_dir"] == str(run_dirs[0])


def test_plan_preventive_routes_unknown_support_point(planning_store):
    with pytest.raises(LookupError):
        planning_service.plan_preventive_routes(_request(support_point_id="nowhere"))


def test_plan_preventive_routes_with_nobody_due(planning_store, monkeypatch):
    recent = Ticket(
        id="t1",
        status=TicketStatus.COMPLETED,
        type=TicketType.CONTRACT,
        client=TicketClient(id="c1", name="Client c1"),
        created_at=_visited(date(2024, 6, 1)),
        updated_at=_visited(date(2024, 6, 1)),
    )
    monkeypatch.setattr(planning_service, "find_last_ticket_for_contract", lambda cid, sid, types: recent)

    with pytest.raises(ValueError):
        planning_service.plan_preventive_routes(_request())
    assert planning_store["planner"].calls == []


def test_plan_preventive_routes_without_optimizer(planning_store, monkeypatch):
    def unconfigured():
        raise ValueError("Route optimizer base URL is not configured.")

    monkeypatch.setattr(planning_service, "RouteOptimizerClient", unconfigured)

    with pytest.raises(OptimizerUnavailableError):
        planning_service.plan_preventive_routes(_request())


def test_list_support_points_formats_addresses(monkeypatch):
    points = (SupportPoint(id="base", name="Base", address=_address("Av. Sul")),)
    monkeypatch.setattr(planning_service, "get_support_points", lambda: points)

    listed = planning_service.list_support_points()

    assert listed[0].address == "Av. Sul, 10, Centro, Campinas, SP"


def test_due_module_uses_business_timezone():
    # 01:00 UTC is still the previous evening in Sao Paulo.
    late_visit = datetime(2024, 5, 11, 1, 0, tzinfo=timezone.utc)

    assert due.next_due_date(late_visit, 1) == date(2024, 5, 11)
