"""Scheduled generation of preventive maintenance tickets.

Meant to be triggered once a day by an external scheduler through the cron
endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ...config import settings
from ...models.domain import Client, ServiceContract, Ticket, TicketClient, TicketStatus, TicketType
from ...persistence.database import (
    find_last_ticket_for_contract,
    get_active_contracts,
    get_clients_by_ids,
    insert_ticket,
)
from ..timeutils import EPOCH, utc_now

logger = logging.getLogger(__name__)

# Generated preventive tickets have always been typed contract or standard.
PREVENTIVE_TICKET_TYPES = (TicketType.CONTRACT, TicketType.STANDARD)
SYSTEM_CREATOR_ID = "system"


@dataclass(slots=True)
class PreventiveRunResult:
    message: str
    created_ticket_ids: list[str] = field(default_factory=list)
    checked_clients_count: int = 0

    @property
    def created_tickets_count(self) -> int:
        return len(self.created_ticket_ids)


def build_preventive_ticket(client: Client, contract: ServiceContract, sector_id: str, now: datetime) -> Ticket:
    return Ticket(
        id="",
        status=TicketStatus.PENDING,
        type=TicketType.CONTRACT,
        client=TicketClient(
            id=client.id,
            name=client.name,
            phone=client.phone,
            address=client.address.one_line() if client.address else None,
        ),
        created_at=now,
        updated_at=now,
        sector_id=sector_id,
        requester_name=settings.preventive_requester_name,
        creator_id=SYSTEM_CREATOR_ID,
        description=f"Scheduled preventive maintenance under contract (every {contract.frequency_days} days).",
    )


def is_visit_due(last_created_at: Optional[datetime], frequency_days: int, now: datetime) -> bool:
    last_visit = last_created_at or EPOCH
    return (now - last_visit).days >= frequency_days


def generate_preventive_tickets(now: Optional[datetime] = None) -> PreventiveRunResult:
    """Create a pending contract ticket for every contract sector whose visit is due."""
    moment = now or utc_now()
    logger.info("Starting preventive maintenance check")

    contracts = [contract for contract in get_active_contracts() if contract.is_active]
    if not contracts:
        logger.info("No active preventive contracts found")
        return PreventiveRunResult(message="No active preventive contracts found.")

    clients = {
        client.id: client
        for client in get_clients_by_ids(sorted({contract.client_id for contract in contracts}))
        if client.status == "active"
    }
    result = PreventiveRunResult(message="Preventive maintenance check completed.")
    checked: set[str] = set()
    for contract in contracts:
        client = clients.get(contract.client_id)
        if client is None:
            continue
        checked.add(client.id)
        result.checked_clients_count = len(checked)
        for sector_id in contract.sector_ids:
            last_ticket = find_last_ticket_for_contract(client.id, sector_id, PREVENTIVE_TICKET_TYPES)
            if not is_visit_due(last_ticket.created_at if last_ticket else None, contract.frequency_days, moment):
                continue
            logger.info(f"Creating preventive ticket for {client.name} in sector {sector_id}")
            try:
                ticket_id = insert_ticket(build_preventive_ticket(client, contract, sector_id, moment))
            except Exception as e:
                logger.error(f"Failed to create preventive ticket for client {client.id} and sector {sector_id}: {e}")
                continue
            result.created_ticket_ids.append(ticket_id)

    if result.created_ticket_ids:
        logger.info(f"{result.created_tickets_count} preventive tickets were created")
    else:
        logger.info("No preventive tickets needed today")
    return result
