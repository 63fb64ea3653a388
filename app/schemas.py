from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from services.commission import format_commission


class ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ───────────── clients ─────────────


class ClientBase(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    notes: str | None = None


class ClientCreate(ClientBase):
    first_name: str
    last_name: str


class ClientUpdate(ClientBase):
    pass


class ClientRead(ReadModel):
    id: int
    first_name: str
    last_name: str
    notes: str | None = None
    date_created: datetime | None = None
    last_updated: datetime | None = None

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class ClientTripRead(ReadModel):
    id: int
    name: str
    status: str
    start_date: date
    end_date: date


class ClientBookingRead(ReadModel):
    id: int
    vendor_name: str
    service_type_name: str
    start_date: date
    cost: Decimal
    booking_status: str


class ClientDetailRead(ClientRead):
    trips: list[ClientTripRead] = []
    bookings: list[ClientBookingRead] = []


# ───────────── vendors ─────────────


class VendorBase(BaseModel):
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
    service_type_ids: list[int] | None = None
    tag_ids: list[int] | None = None


class VendorCreate(VendorBase):
    name: str
    price_range: int = 1
    service_type_ids: list[int] = []
    tag_ids: list[int] = []


class VendorUpdate(VendorBase):
    pass


class VendorRead(ReadModel):
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
    service_type_ids: list[int] = []
    service_type_names: list[str] = []
    tag_ids: list[int] = []
    tag_names: list[str] = []


class VendorBookingRead(ReadModel):
    id: int
    client_names: list[str]
    service_type_name: str
    start_date: date
    cost: Decimal
    commission_amount: Decimal
    booking_status: str
    rating: int | None = None


class VendorDetailRead(VendorRead):
    bookings: list[VendorBookingRead] = []


# ───────────── bookings ─────────────


class BookingBase(BaseModel):
    vendor_id: int | None = None
    service_type_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    client_ids: list[int] | None = None
    cost: Decimal | str | None = None
    commission_rate: Decimal | str | None = None
    trip_id: int | None = None
    agent_id: int | None = None
    location: str | None = None
    location_tag_id: int | None = None
    notes: str | None = None


class BookingCreate(BookingBase):
    vendor_id: int
    service_type_id: int
    start_date: date
    client_ids: list[int] = []
    cost: Decimal | str = Decimal("0")
    booking_status: str | None = None
    commission_status: str | None = None


class BookingUpdate(BookingBase):
    is_completed: bool | None = None


class BookingRead(ReadModel):
    id: int
    vendor_id: int
    vendor_name: str
    service_type_id: int
    service_type_name: str
    start_date: date
    end_date: date | None = None
    cost: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    booking_status: str
    commission_status: str
    client_ids: list[int] = []
    client_names: list[str] = []
    trip_id: int | None = None
    trip_name: str = ""
    agent_id: int | None = None
    agent_name: str = ""
    location: str = ""
    location_tag_id: int | None = None
    is_completed: bool = False
    rating: int | None = None

    @computed_field
    @property
    def commission_display(self) -> str:
        return format_commission(self.commission_amount)


class BookingDetailRead(BookingRead):
    notes: str | None = None
    location_label: str | None = None


class StatusChange(BaseModel):
    status: str


class RatingIn(BaseModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    is_completed: bool | None = None


class BookingFormVendorIn(BaseModel):
    vendor_id: int
    cost: Decimal | str = Decimal("0")
    commission_rate: Decimal | str | None = None
    service_type_id: int | None = None


class ServiceTypeOptionRead(BaseModel):
    id: int
    name: str


class BookingFormRead(BaseModel):
    vendor_id: int | None = None
    service_type_id: int | None = None
    cost: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    commission_display: str
    rate_locked: bool
    available_service_types: list[ServiceTypeOptionRead]
    error: str | None = None


# ───────────── trips ─────────────


class TripBase(BaseModel):
    name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    client_ids: list[int] | None = None
    is_high_priority: bool | None = None
    description: str | None = None
    notes: str | None = None
    agent_id: int | None = None


class TripCreate(TripBase):
    name: str
    start_date: date
    end_date: date
    client_ids: list[int] = []
    status: str | None = None
    is_high_priority: bool = False


class TripUpdate(TripBase):
    pass


class TripRead(ReadModel):
    id: int
    name: str
    status: str
    start_date: date
    end_date: date
    is_high_priority: bool
    description: str | None = None
    notes: str | None = None
    agent_id: int | None = None
    client_ids: list[int] = []
    client_names: list[str] = []


class TripDetailRead(TripRead):
    bookings: list[BookingRead] = []


# ───────────── reference data ─────────────


class ServiceTypeIn(BaseModel):
    name: str | None = None
    tag_ids: list[int] | None = None


class ServiceTypeRead(ReadModel):
    id: int
    name: str
    tag_names: list[str] = []
    vendor_count: int = 0


class TagIn(BaseModel):
    name: str


class TagRead(ReadModel):
    id: int
    name: str
    usage_count: int = 0


class LocationTagIn(BaseModel):
    continent: str
    country: str
    state_province: str | None = None
    city: str | None = None


class LocationTagRead(ReadModel):
    id: int
    continent: str
    country: str
    state_province: str | None = None
    city: str | None = None

    @computed_field
    @property
    def label(self) -> str:
        parts = [self.continent, self.country, self.state_province, self.city]
        return " > ".join(p for p in parts if p)


class LocationNodeRead(ReadModel):
    continent: str
    countries: dict[str, dict[str, list[str]]]


# ───────────── agents ─────────────


class AgentCreate(BaseModel):
    email: str
    first_name: str = ""
    last_name: str = ""
    role: str = "Agent"
    agent_commission_percentage: Decimal | str | None = None


class AgentUpdate(BaseModel):
    role: str | None = None
    is_active: bool | None = None
    agent_commission_percentage: Decimal | str | None = None
    clear_percentage: bool = False


class OwnProfileUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    accepting_new_bookings: bool | None = None


class ProfileRead(ReadModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    agent_commission_percentage: Decimal | None = None
    accepting_new_bookings: bool

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# ───────────── commissions, imports, audit ─────────────


class CommissionSummaryRead(ReadModel):
    total_bookings: int
    total_commission: Decimal
    confirmed_commission: Decimal
    agent_count: int
    unreceived_commission: Decimal
    received_commission: Decimal
    completed_commission: Decimal


class AgentShareRead(BaseModel):
    agent_id: int
    agent_name: str
    commission_total: Decimal
    agent_percentage: Decimal | None = None
    agent_share: Decimal


class RowErrorRead(ReadModel):
    row: int
    field: str
    message: str


class ImportResultRead(ReadModel):
    success: int
    errors: list[RowErrorRead] = []


class AuditLogRead(ReadModel):
    id: int
    user_id: int | None = None
    user_email: str | None = None
    action: str
    resource_type: str
    resource_id: str | None = None
    details: dict | None = None
    created_at: datetime
