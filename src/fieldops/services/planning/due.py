"""Selection of clients due for a preventive visit."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Mapping, Optional

from ...models.domain import Client, ServiceContract
from ..routing.models import PlanningClient
from ..timeutils import local_date

# (client_id, sector_id) -> timestamp of the last preventive visit, or None.
LastVisitLookup = Callable[[str, str], Optional[datetime]]


def next_due_date(last_visit: Optional[datetime], frequency_days: int) -> Optional[date]:
    """None means the client was never visited and is due immediately."""
    if last_visit is None:
        return None
    return local_date(last_visit) + timedelta(days=frequency_days)


def find_due_clients(
    contracts: Iterable[ServiceContract],
    clients: Mapping[str, Client],
    last_visit_lookup: LastVisitLookup,
    period_start: date,
    period_end: date,
    sector_id: Optional[str] = None,
) -> list[PlanningClient]:
    """Clients whose next preventive visit falls on or before ``period_end``.

    Overdue and never-visited clients are included. Clients without a street
    address cannot be routed and are skipped. Each client is listed once, in
    contract order.
    """
    if period_end < period_start:
        raise ValueError("period_end must not be before period_start")

    due: list[PlanningClient] = []
    seen: set[str] = set()
    for contract in contracts:
        if not contract.is_active or contract.client_id in seen:
            continue
        client = clients.get(contract.client_id)
        if client is None or client.address is None:
            continue

        sectors = [sid for sid in contract.sector_ids if sector_id is None or sid == sector_id]
        for contract_sector in sectors:
            due_on = next_due_date(last_visit_lookup(client.id, contract_sector), contract.frequency_days)
            if due_on is None or due_on <= period_end:
                due.append(PlanningClient(id=client.id, name=client.name, address=client.address.one_line()))
                seen.add(client.id)
                break
    return due
