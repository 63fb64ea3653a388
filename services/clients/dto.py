from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal

from database.models import Client


@dataclass
class ClientDTO:
    id: int
    first_name: str
    last_name: str
    notes: str | None = None
    date_created: datetime | None = None
    last_updated: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_model(cls, client: Client) -> "ClientDTO":
        return cls(
            id=client.id,
            first_name=client.first_name,
            last_name=client.last_name,
            notes=client.notes,
            date_created=client.date_created,
            last_updated=client.last_updated,
        )


@dataclass(slots=True)
class ClientTripInfo:
    id: int
    name: str
    status: str
    start_date: date
    end_date: date


@dataclass(slots=True)
class ClientBookingInfo:
    id: int
    vendor_name: str
    service_type_name: str
    start_date: date
    cost: Decimal
    booking_status: str


@dataclass
class ClientDetailsDTO(ClientDTO):
    trips: list[ClientTripInfo] = field(default_factory=list)
    bookings: list[ClientBookingInfo] = field(default_factory=list)


@dataclass(frozen=True)
class ClientCreateCommand:
    first_name: str
    last_name: str
    notes: str | None = None

    def to_payload(self) -> dict:
        payload: dict[str, object] = {}
        for key, value in asdict(self).items():
            if value in (None, ""):
                continue
            payload[key] = value
        return payload


@dataclass(frozen=True)
class ClientUpdateCommand:
    id: int
    first_name: str | None = None
    last_name: str | None = None
    notes: str | None = None

    def to_payload(self) -> dict:
        payload: dict[str, object] = {}
        for key, value in asdict(self).items():
            if key == "id":
                continue
            if value is None:
                continue
            payload[key] = value
        return payload
