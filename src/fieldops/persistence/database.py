"""Database persistence for tickets, technicians, clients and contracts."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any, Iterable, Optional, Sequence

from ..db.supabase import get_supabase_client
from ..models.domain import (
    Address,
    Client,
    RouteHistoryEntry,
    ServiceContract,
    SupportPoint,
    Technician,
    Ticket,
    TicketClient,
    TicketStatus,
    TicketType,
)
from ..services.timeutils import EPOCH, parse_timestamp, utc_now

TICKETS_TABLE = "external_tickets"
TECHNICIANS_TABLE = "technicians"
CLIENTS_TABLE = "clients"
CONTRACTS_TABLE = "service_contracts"
SUPPORT_POINTS_TABLE = "support_points"
SYSTEM_LOGS_TABLE = "system_logs"

# Stored status labels that put a ticket on a route board, including legacy ones.
ROUTE_STATUS_LABELS = ["in-progress", "completed", "em andamento", "concluído"]


def type_labels(ticket_types: Sequence[TicketType]) -> list[str]:
    """Stored type labels matching any of ``ticket_types``, including legacy ones."""
    labels: list[str] = []
    for ticket_type in ticket_types:
        labels.extend(label for label in ticket_type.stored_labels() if label not in labels)
    return labels


class DatabaseUnavailableError(RuntimeError):
    """Raised by write operations when Supabase is not configured."""


def _require_client():
    supabase = get_supabase_client()
    if not supabase:
        raise DatabaseUnavailableError(
            "Supabase not configured. Set FIELDOPS_SUPABASE_URL and FIELDOPS_SUPABASE_KEY environment variables."
        )
    return supabase


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------

def _lifecycle_timestamp(value: Any):
    """Check-in/out are stored either as a bare timestamp or as ``{ticket_id, timestamp}``."""
    if isinstance(value, dict):
        return parse_timestamp(value.get("timestamp"))
    return parse_timestamp(value)


def ticket_from_row(row: dict[str, Any]) -> Ticket:
    client_data = row.get("client") or {}
    if not isinstance(client_data, dict):
        raise ValueError(f"Ticket {row.get('id')} has an invalid client payload")
    created_at = parse_timestamp(row.get("created_at")) or EPOCH
    return Ticket(
        id=str(row["id"]),
        status=TicketStatus.parse(row["status"]),
        client=TicketClient(
            id=str(client_data.get("id", "")),
            name=str(client_data.get("name", "")),
            phone=str(client_data.get("phone") or ""),
            address=(str(client_data.get("address")).strip() or None) if client_data.get("address") else None,
            is_whats=bool(client_data.get("is_whats", False)),
        ),
        created_at=created_at,
        updated_at=parse_timestamp(row.get("updated_at")) or created_at,
        technician_id=row.get("technician_id") or None,
        sector_id=row.get("sector_id") or None,
        type=TicketType.parse(row["type"]) if row.get("type") else TicketType.STANDARD,
        description=str(row.get("description") or ""),
        requester_name=row.get("requester_name"),
        creator_id=row.get("creator_id"),
        scheduled_to=parse_timestamp(row.get("scheduled_to")),
        en_route=bool(row.get("en_route", False)),
        en_route_at=parse_timestamp(row.get("en_route_at")),
        check_in=_lifecycle_timestamp(row.get("check_in")),
        check_out=_lifecycle_timestamp(row.get("check_out")),
    )


def ticket_to_row(ticket: Ticket) -> dict[str, Any]:
    """Serialize a new ticket for insertion; the database assigns the id."""
    return {
        "status": ticket.status.value,
        "type": ticket.type.value,
        "client": asdict(ticket.client),
        "technician_id": ticket.technician_id,
        "sector_id": ticket.sector_id,
        "description": ticket.description,
        "requester_name": ticket.requester_name,
        "creator_id": ticket.creator_id,
        "en_route": ticket.en_route,
        "created_at": ticket.created_at.isoformat(),
        "updated_at": ticket.updated_at.isoformat(),
        "comments": [],
    }


def _route_order_from_value(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value if item)


def _history_entry_from_value(value: dict[str, Any]) -> RouteHistoryEntry:
    return RouteHistoryEntry(
        date=date.fromisoformat(str(value["date"])),
        route_order=_route_order_from_value(value.get("route_order")),
        finished_at=parse_timestamp(value.get("finished_at")),
    )


def history_entry_to_value(entry: RouteHistoryEntry) -> dict[str, Any]:
    return {
        "date": entry.date.isoformat(),
        "route_order": list(entry.route_order),
        "finished_at": entry.finished_at.isoformat() if entry.finished_at else None,
    }


def technician_from_row(row: dict[str, Any]) -> Technician:
    history: list[RouteHistoryEntry] = []
    for value in row.get("route_history") or []:
        try:
            history.append(_history_entry_from_value(value))
        except (KeyError, TypeError, ValueError) as e:
            logging.warning(f"Skipping invalid route history entry for technician {row.get('id')}: {e}")
    return Technician(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        user_id=row.get("user_id"),
        email=row.get("email"),
        status=str(row.get("status") or "active"),
        sector_ids=tuple(str(item) for item in (row.get("sector_ids") or [])),
        route_order=_route_order_from_value(row.get("route_order")),
        route_history=tuple(history),
    )


def address_from_value(value: Any) -> Optional[Address]:
    if not isinstance(value, dict) or not value.get("street"):
        return None
    return Address(
        street=str(value["street"]),
        number=str(value["number"]) if value.get("number") else None,
        complement=value.get("complement") or None,
        neighborhood=str(value.get("neighborhood") or ""),
        city=str(value.get("city") or ""),
        state=str(value.get("state") or ""),
    )


def client_from_row(row: dict[str, Any]) -> Client:
    return Client(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        phone=str(row.get("phone") or ""),
        address=address_from_value(row.get("address")),
        status=str(row.get("status") or "active"),
    )


def contract_from_row(row: dict[str, Any]) -> ServiceContract:
    return ServiceContract(
        id=str(row["id"]),
        client_id=str(row["client_id"]),
        sector_ids=tuple(str(item) for item in (row.get("sector_ids") or [])),
        frequency_days=int(row.get("frequency_days") or 0),
        status=str(row.get("status") or "active"),
    )


def support_point_from_row(row: dict[str, Any]) -> SupportPoint:
    address = address_from_value(row.get("address"))
    if address is None:
        raise ValueError(f"Support point {row.get('id')} has no street address")
    return SupportPoint(id=str(row["id"]), name=str(row.get("name") or ""), address=address)


def _map_rows(rows: Iterable[dict[str, Any]], mapper, label: str) -> list:
    items = []
    for row in rows:
        try:
            items.append(mapper(row))
        except (KeyError, TypeError, ValueError) as e:
            logging.warning(f"Skipping invalid {label} row {row.get('id', '?')}: {e}")
    return items


# ---------------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------------

def get_route_tickets(technician_id: str | None = None) -> list[Ticket]:
    """Tickets in progress or completed, optionally for one technician.

    Scoping completed tickets to the current day is left to the caller.
    """
    supabase = get_supabase_client()
    if not supabase:
        logging.warning("Database not configured - cannot fetch route tickets")
        return []

    try:
        query = supabase.table(TICKETS_TABLE).select("*").in_("status", ROUTE_STATUS_LABELS)
        if technician_id:
            query = query.eq("technician_id", technician_id)
        response = query.execute()
        return _map_rows(response.data or [], ticket_from_row, "ticket")
    except Exception as e:
        logging.warning(f"Failed to retrieve route tickets from database: {e}")
        return []


def get_tickets_by_ids(ticket_ids: Sequence[str]) -> list[Ticket]:
    supabase = get_supabase_client()
    if not supabase or not ticket_ids:
        return []

    try:
        response = supabase.table(TICKETS_TABLE).select("*").in_("id", list(ticket_ids)).execute()
        return _map_rows(response.data or [], ticket_from_row, "ticket")
    except Exception as e:
        logging.warning(f"Failed to retrieve tickets {list(ticket_ids)[:5]}: {e}")
        return []


def find_last_ticket_for_contract(
    client_id: str,
    sector_id: str,
    ticket_types: Sequence[TicketType] = (TicketType.CONTRACT,),
) -> Optional[Ticket]:
    """Most recently created ticket of the given types for a client and sector."""
    supabase = _require_client()
    labels = type_labels(ticket_types)
    response = (
        supabase.table(TICKETS_TABLE)
        .select("*")
        .eq("client->>id", client_id)
        .eq("sector_id", sector_id)
        .in_("type", labels)
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    tickets = _map_rows(response.data or [], ticket_from_row, "ticket")
    return tickets[0] if tickets else None


def insert_ticket(ticket: Ticket) -> str:
    supabase = _require_client()
    response = supabase.table(TICKETS_TABLE).insert(ticket_to_row(ticket)).execute()
    if not response.data:
        raise RuntimeError("Ticket insert returned no data")
    return str(response.data[0]["id"])


# ---------------------------------------------------------------------------
# Technicians
# ---------------------------------------------------------------------------

def get_technicians() -> list[Technician]:
    supabase = get_supabase_client()
    if not supabase:
        logging.warning("Database not configured - cannot fetch technicians")
        return []

    try:
        response = supabase.table(TECHNICIANS_TABLE).select("*").execute()
        return _map_rows(response.data or [], technician_from_row, "technician")
    except Exception as e:
        logging.warning(f"Failed to retrieve technicians from database: {e}")
        return []


def get_technician(technician_id: str) -> Optional[Technician]:
    supabase = get_supabase_client()
    if not supabase:
        logging.warning("Database not configured - cannot fetch technician")
        return None

    try:
        response = supabase.table(TECHNICIANS_TABLE).select("*").eq("id", technician_id).limit(1).execute()
    except Exception as e:
        logging.warning(f"Failed to retrieve technician {technician_id}: {e}")
        return None
    rows = _map_rows(response.data or [], technician_from_row, "technician")
    return rows[0] if rows else None


def update_technician_route_order(technician_id: str, ticket_ids: Sequence[str]) -> None:
    supabase = _require_client()
    supabase.table(TECHNICIANS_TABLE).update({"route_order": list(ticket_ids)}).eq("id", technician_id).execute()
    logging.info(f"Saved route order of {len(ticket_ids)} tickets for technician {technician_id}")


def archive_route(technician: Technician, entry: RouteHistoryEntry) -> None:
    """Append ``entry`` to the technician's route history and clear the current order.

    The history is re-read right before the write so entries archived since
    ``technician`` was loaded are kept. The read and the update are still two
    requests, so two clears landing in between can drop one of the entries.
    """
    supabase = _require_client()
    response = supabase.table(TECHNICIANS_TABLE).select("route_history").eq("id", technician.id).limit(1).execute()
    if response.data:
        stored = response.data[0].get("route_history")
        history = list(stored) if isinstance(stored, list) else []
    else:
        history = [history_entry_to_value(item) for item in technician.route_history]
    history.append(history_entry_to_value(entry))
    supabase.table(TECHNICIANS_TABLE).update({"route_history": history, "route_order": []}).eq(
        "id", technician.id
    ).execute()
    logging.info(f"Archived route of {len(entry.route_order)} tickets for technician {technician.id}")


# ---------------------------------------------------------------------------
# Clients and contracts
# ---------------------------------------------------------------------------

def get_clients_by_ids(client_ids: Sequence[str]) -> list[Client]:
    supabase = get_supabase_client()
    if not supabase or not client_ids:
        return []

    try:
        response = supabase.table(CLIENTS_TABLE).select("*").in_("id", list(client_ids)).execute()
        return _map_rows(response.data or [], client_from_row, "client")
    except Exception as e:
        logging.warning(f"Failed to retrieve clients from database: {e}")
        return []


def get_active_contracts() -> list[ServiceContract]:
    supabase = get_supabase_client()
    if not supabase:
        logging.warning("Database not configured - cannot fetch service contracts")
        return []

    try:
        response = supabase.table(CONTRACTS_TABLE).select("*").eq("status", "active").execute()
        return _map_rows(response.data or [], contract_from_row, "contract")
    except Exception as e:
        logging.warning(f"Failed to retrieve service contracts from database: {e}")
        return []


# ---------------------------------------------------------------------------
# System log
# ---------------------------------------------------------------------------

def log_system_event(user_id: str | None, event: str, flow_name: str, details: dict[str, Any]) -> None:
    """Record an audit event. Failures are logged and never interrupt the caller."""
    supabase = get_supabase_client()
    if not supabase:
        return
    try:
        supabase.table(SYSTEM_LOGS_TABLE).insert(
            {
                "user_id": user_id,
                "event": event,
                "flow_name": flow_name,
                "timestamp": utc_now().isoformat(),
                "details": details,
            }
        ).execute()
    except Exception as e:
        logging.warning(f"Could not log {event} event for {flow_name}: {e}")
