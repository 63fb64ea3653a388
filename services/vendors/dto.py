"""DTO для представления поставщиков."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal

__all__ = [
    "VendorBookingInfo",
    "VendorRowDTO",
    "VendorDetailsDTO",
    "VendorCreateCommand",
    "VendorUpdateCommand",
]


@dataclass
class VendorRowDTO:
    """Строка списка поставщиков."""

    id: int
    name: str
    contact_person: str
    email: str
    phone: str
    address: str
    service_area: str
    commission_rate: Decimal
    price_range: int
    rating: Decimal
    notes: str | None = None
    location_tag_id: int | None = None
    location_label: str | None = None
    service_type_ids: list[int] = field(default_factory=list)
    service_type_names: list[str] = field(default_factory=list)
    tag_ids: list[int] = field(default_factory=list)
    tag_names: list[str] = field(default_factory=list)


@dataclass(slots=True)
class VendorBookingInfo:
    """Бронирование в истории поставщика."""

    id: int
    client_names: list[str]
    service_type_name: str
    start_date: date
    cost: Decimal
    commission_amount: Decimal
    booking_status: str
    rating: int | None


@dataclass
class VendorDetailsDTO(VendorRowDTO):
    bookings: list[VendorBookingInfo] = field(default_factory=list)


@dataclass(frozen=True)
class VendorCreateCommand:
    name: str
    contact_person: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    service_area: str = ""
    commission_rate: Decimal | str | None = None
    price_range: int = 1
    notes: str | None = None
    location_tag_id: int | None = None
    service_type_ids: tuple[int, ...] = ()
    tag_ids: tuple[int, ...] = ()

    def to_payload(self) -> dict:
        payload = asdict(self)
        if payload["commission_rate"] in (None, ""):
            payload.pop("commission_rate")
        return payload


@dataclass(frozen=True)
class VendorUpdateCommand:
    id: int
    name: str | None = None
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    service_area: str | None = None
    commission_rate: Decimal | str | None = None
    price_range: int | None = None
    notes: str | None = None
    location_tag_id: int | None = None
    service_type_ids: tuple[int, ...] | None = None
    tag_ids: tuple[int, ...] | None = None

    def to_payload(self) -> dict:
        return {
            key: value
            for key, value in asdict(self).items()
            if key != "id" and value is not None
        }
