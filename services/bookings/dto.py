"""DTO для представления бронирований."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal

from services.commission import format_commission

__all__ = [
    "BookingRowDTO",
    "BookingDetailsDTO",
    "BookingCreateCommand",
    "BookingUpdateCommand",
]


@dataclass
class BookingRowDTO:
    """Строка списка бронирований и комиссий."""

    id: int
    vendor_id: int
    vendor_name: str
    service_type_id: int
    service_type_name: str
    start_date: date
    cost: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    booking_status: str
    commission_status: str
    client_ids: list[int] = field(default_factory=list)
    client_names: list[str] = field(default_factory=list)
    trip_id: int | None = None
    trip_name: str = ""
    agent_id: int | None = None
    agent_name: str = ""
    end_date: date | None = None
    location: str = ""
    location_tag_id: int | None = None
    is_completed: bool = False
    rating: int | None = None

    @property
    def commission_display(self) -> str:
        return format_commission(self.commission_amount)


@dataclass
class BookingDetailsDTO(BookingRowDTO):
    notes: str | None = None
    location_label: str | None = None


@dataclass(frozen=True)
class BookingCreateCommand:
    vendor_id: int
    service_type_id: int
    start_date: date
    client_ids: tuple[int, ...] = ()
    cost: Decimal | str = Decimal("0")
    commission_rate: Decimal | str | None = None
    trip_id: int | None = None
    agent_id: int | None = None
    end_date: date | None = None
    location: str = ""
    location_tag_id: int | None = None
    booking_status: str | None = None
    commission_status: str | None = None
    notes: str | None = None

    def to_payload(self) -> dict:
        return {
            key: value
            for key, value in asdict(self).items()
            if value is not None
        }


@dataclass(frozen=True)
class BookingUpdateCommand:
    id: int
    vendor_id: int | None = None
    service_type_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    client_ids: tuple[int, ...] | None = None
    cost: Decimal | str | None = None
    commission_rate: Decimal | str | None = None
    trip_id: int | None = None
    agent_id: int | None = None
    location: str | None = None
    location_tag_id: int | None = None
    is_completed: bool | None = None
    notes: str | None = None

    def to_payload(self) -> dict:
        return {
            key: value
            for key, value in asdict(self).items()
            if key != "id" and value is not None
        }
