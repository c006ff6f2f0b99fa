"""Domain models for tickets, technicians, clients and contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class TicketStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELED = "canceled"

    @classmethod
    def parse(cls, value: str) -> "TicketStatus":
        """Accept canonical values and the labels stored by the legacy frontend."""
        normalized = str(value).strip().lower()
        legacy = _LEGACY_STATUS_LABELS.get(normalized)
        if legacy is not None:
            return legacy
        return cls(normalized)


_LEGACY_STATUS_LABELS = {
    "pendente": TicketStatus.PENDING,
    "em andamento": TicketStatus.IN_PROGRESS,
    "concluído": TicketStatus.COMPLETED,
    "concluido": TicketStatus.COMPLETED,
    "cancelado": TicketStatus.CANCELED,
}


class TicketType(str, Enum):
    STANDARD = "standard"
    CONTRACT = "contract"
    URGENT = "urgent"
    SCHEDULED = "scheduled"
    RETURN = "return"

    @classmethod
    def parse(cls, value: str) -> "TicketType":
        normalized = str(value).strip().lower()
        legacy = _LEGACY_TYPE_LABELS.get(normalized)
        if legacy is not None:
            return legacy
        return cls(normalized)

    def stored_labels(self) -> tuple[str, ...]:
        """Every label this type may be stored under, legacy ones included."""
        return (self.value, *(label for label, kind in _LEGACY_TYPE_LABELS.items() if kind is self))


_LEGACY_TYPE_LABELS = {
    "padrão": TicketType.STANDARD,
    "padrao": TicketType.STANDARD,
    "contrato": TicketType.CONTRACT,
    "urgente": TicketType.URGENT,
    "agendado": TicketType.SCHEDULED,
    "retorno": TicketType.RETURN,
}


class StopState(str, Enum):
    """Progress of a single stop as shown on a route card."""

    COMPLETED = "completed"
    ON_SITE = "on-site"
    EN_ROUTE = "en-route"
    PENDING = "pending"


@dataclass(slots=True, frozen=True)
class Address:
    street: str
    neighborhood: str
    city: str
    state: str
    number: Optional[str] = None
    complement: Optional[str] = None

    def one_line(self) -> str:
        return f"{self.street}, {self.number or 'S/N'}, {self.neighborhood}, {self.city}, {self.state}"


@dataclass(slots=True, frozen=True)
class TicketClient:
    """Client snapshot embedded in a ticket when it is opened."""

    id: str
    name: str
    phone: str = ""
    address: Optional[str] = None
    is_whats: bool = False


@dataclass(slots=True, frozen=True)
class Ticket:
    """An external service ticket with its route lifecycle flags."""

    id: str
    status: TicketStatus
    client: TicketClient
    created_at: datetime
    updated_at: datetime
    technician_id: Optional[str] = None
    sector_id: Optional[str] = None
    type: TicketType = TicketType.STANDARD
    description: str = ""
    requester_name: Optional[str] = None
    creator_id: Optional[str] = None
    scheduled_to: Optional[datetime] = None
    en_route: bool = False
    en_route_at: Optional[datetime] = None
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None

    @property
    def has_address(self) -> bool:
        return bool(self.client.address and self.client.address.strip())


@dataclass(slots=True, frozen=True)
class RouteHistoryEntry:
    date: date
    route_order: tuple[str, ...]
    finished_at: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class Technician:
    id: str
    name: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    status: str = "active"
    sector_ids: tuple[str, ...] = ()
    route_order: tuple[str, ...] = ()
    route_history: tuple[RouteHistoryEntry, ...] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class Client:
    id: str
    name: str
    phone: str = ""
    address: Optional[Address] = None
    status: str = "active"


@dataclass(slots=True, frozen=True)
class ServiceContract:
    """Recurring preventive-visit agreement between a client and one or more sectors."""

    id: str
    client_id: str
    sector_ids: tuple[str, ...]
    frequency_days: int
    status: str = "active"

    @property
    def is_active(self) -> bool:
        return self.status == "active" and bool(self.sector_ids) and self.frequency_days > 0


@dataclass(slots=True, frozen=True)
class SupportPoint:
    """A company base that preventive routes start from."""

    id: str
    name: str
    address: Address
