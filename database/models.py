from datetime import datetime
from enum import Enum
from peewee import (
    Model,
    BooleanField,
    CharField,
    DateField,
    DateTimeField,
    DecimalField,
    ForeignKeyField,
    IntegerField,
    TextField,
)

from database.db import db
from services.commission import compute_commission
from utils.money import round_to_places

# digits after the point for money columns and percent rates
MONEY_PLACES = 2
RATE_PLACES = 4


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELED = "Canceled"


class CommissionStatus(str, Enum):
    UNRECEIVED = "Unreceived"
    RECEIVED = "Received"
    CANCELED = "Canceled"
    COMPLETED = "Completed"


class TripStatus(str, Enum):
    PLANNED = "Planned"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    CANCELED = "Canceled"


class UserRole(str, Enum):
    """Access level of a profile, ordered ``AGENT < ADMIN < SUPER_ADMIN``."""

    AGENT = "Agent"
    ADMIN = "Admin"
    SUPER_ADMIN = "SuperAdmin"

    @property
    def rank(self) -> int:
        return list(UserRole).index(self)

    @classmethod
    def parse(cls, value) -> "UserRole | None":
        """Return the role for ``value`` or ``None`` if it is not a known role."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None

    def __lt__(self, other):
        if not isinstance(other, UserRole):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, UserRole):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, UserRole):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, UserRole):
            return NotImplemented
        return self.rank >= other.rank


class BaseModel(Model):
    class Meta:
        database = db


class TimestampedModel(BaseModel):
    """Base with ``created_at``/``updated_at`` maintained on save."""

    created_at = DateTimeField(default=datetime.utcnow)
    updated_at = DateTimeField(default=datetime.utcnow)

    def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        only = kwargs.get("only")
        if only:
            kwargs["only"] = list(only) + [type(self).updated_at]
        return super().save(*args, **kwargs)


class Profile(TimestampedModel):
    email = CharField(unique=True)
    first_name = CharField(default="")
    last_name = CharField(default="")
    role = CharField(default=UserRole.AGENT.value)
    is_active = BooleanField(default=True)
    agent_commission_percentage = DecimalField(
        max_digits=7, decimal_places=RATE_PLACES, null=True
    )
    accepting_new_bookings = BooleanField(default=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return self.full_name or self.email


class Client(BaseModel):
    first_name = CharField(index=True)
    last_name = CharField(index=True)
    notes = TextField(null=True)
    date_created = DateTimeField(default=datetime.utcnow)
    last_updated = DateTimeField(default=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def save(self, *args, **kwargs):
        self.last_updated = datetime.utcnow()
        only = kwargs.get("only")
        if only:
            kwargs["only"] = list(only) + [Client.last_updated]
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.full_name


class ServiceType(TimestampedModel):
    name = CharField(unique=True)

    def __str__(self) -> str:
        return self.name


class Tag(TimestampedModel):
    name = CharField(unique=True)

    def __str__(self) -> str:
        return self.name


class ServiceTypeTag(BaseModel):
    service_type = ForeignKeyField(ServiceType, backref="tag_links", on_delete="CASCADE")
    tag = ForeignKeyField(Tag, backref="service_type_links", on_delete="CASCADE")

    class Meta:
        indexes = ((("service_type", "tag"), True),)


class LocationTag(TimestampedModel):
    continent = CharField()
    country = CharField()
    state_province = CharField(null=True)
    city = CharField(null=True)

    class Meta:
        indexes = ((("continent", "country", "state_province", "city"), True),)

    @property
    def label(self) -> str:
        parts = [self.continent, self.country, self.state_province, self.city]
        return " > ".join(p for p in parts if p)

    def __str__(self) -> str:
        return self.label


class Vendor(TimestampedModel):
    name = CharField(index=True)
    contact_person = CharField(default="")
    email = CharField(default="")
    phone = CharField(default="")
    address = CharField(default="")
    service_area = CharField(default="")
    commission_rate = DecimalField(max_digits=7, decimal_places=RATE_PLACES, default=0)
    price_range = IntegerField(default=1)
    rating = DecimalField(max_digits=3, decimal_places=2, default=0)
    notes = TextField(null=True)
    location_tag = ForeignKeyField(
        LocationTag, backref="vendors", null=True, on_delete="SET NULL"
    )

    def __str__(self) -> str:
        return self.name


class VendorServiceType(BaseModel):
    vendor = ForeignKeyField(Vendor, backref="service_type_links", on_delete="CASCADE")
    service_type = ForeignKeyField(
        ServiceType, backref="vendor_links", on_delete="CASCADE"
    )

    class Meta:
        indexes = ((("vendor", "service_type"), True),)


class VendorTag(BaseModel):
    vendor = ForeignKeyField(Vendor, backref="tag_links", on_delete="CASCADE")
    tag = ForeignKeyField(Tag, backref="vendor_links", on_delete="CASCADE")

    class Meta:
        indexes = ((("vendor", "tag"), True),)


class Trip(TimestampedModel):
    name = CharField()
    status = CharField(default=TripStatus.PLANNED.value)
    start_date = DateField()
    end_date = DateField()
    is_high_priority = BooleanField(default=False)
    description = TextField(null=True)
    notes = TextField(null=True)
    agent = ForeignKeyField(Profile, backref="trips", null=True, on_delete="SET NULL")

    def __str__(self) -> str:
        return self.name


class TripClient(BaseModel):
    trip = ForeignKeyField(Trip, backref="client_links", on_delete="CASCADE")
    client = ForeignKeyField(Client, backref="trip_links", on_delete="CASCADE")

    class Meta:
        indexes = ((("trip", "client"), True),)


class Booking(TimestampedModel):
    vendor = ForeignKeyField(Vendor, backref="bookings")
    service_type = ForeignKeyField(ServiceType, backref="bookings")
    trip = ForeignKeyField(Trip, backref="bookings", null=True, on_delete="SET NULL")
    agent = ForeignKeyField(Profile, backref="bookings", null=True, on_delete="SET NULL")
    start_date = DateField()
    end_date = DateField(null=True)
    location = CharField(default="")
    location_tag = ForeignKeyField(
        LocationTag, backref="bookings", null=True, on_delete="SET NULL"
    )
    cost = DecimalField(max_digits=12, decimal_places=MONEY_PLACES, default=0)
    commission_rate = DecimalField(max_digits=7, decimal_places=RATE_PLACES, default=0)
    # unrounded: cost * commission_rate / 100
    commission_amount = DecimalField(max_digits=20, decimal_places=8, default=0)
    booking_status = CharField(default=BookingStatus.PENDING.value)
    commission_status = CharField(default=CommissionStatus.UNRECEIVED.value)
    is_completed = BooleanField(default=False)
    notes = TextField(null=True)
    rating = IntegerField(null=True)

    def save(self, *args, **kwargs):
        # amount follows the values as the columns will store them
        self.cost = round_to_places(self.cost, MONEY_PLACES)
        self.commission_rate = round_to_places(self.commission_rate, RATE_PLACES)
        self.commission_amount = compute_commission(self.cost, self.commission_rate)
        only = kwargs.get("only")
        if only:
            kwargs["only"] = list(only) + [Booking.commission_amount]
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"Booking #{self.id}"


class BookingClient(BaseModel):
    booking = ForeignKeyField(Booking, backref="client_links", on_delete="CASCADE")
    client = ForeignKeyField(Client, backref="booking_links", on_delete="CASCADE")

    class Meta:
        indexes = ((("booking", "client"), True),)


class AuditLog(BaseModel):
    user = ForeignKeyField(Profile, backref="audit_logs", null=True, on_delete="SET NULL")
    user_email = CharField(null=True)
    action = CharField()
    resource_type = CharField()
    resource_id = CharField(null=True)
    details = TextField(null=True)
    created_at = DateTimeField(default=datetime.utcnow, index=True)
