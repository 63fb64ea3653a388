from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from database.models import (
    Booking,
    BookingClient,
    Client,
    Profile,
    ServiceType,
    UserRole,
    Vendor,
    VendorServiceType,
)
from services.access import UserSession


def _make_session(email: str, role: UserRole, first_name: str = "") -> UserSession:
    profile = Profile.create(
        email=email, first_name=first_name or role.value, last_name="User", role=role.value
    )
    return UserSession.from_profile(profile)


@pytest.fixture
def agent_session():
    return _make_session("agent@example.com", UserRole.AGENT, "Anna")


@pytest.fixture
def admin_session():
    return _make_session("admin@example.com", UserRole.ADMIN, "Adam")


@pytest.fixture
def super_session():
    return _make_session("root@example.com", UserRole.SUPER_ADMIN, "Sam")


@pytest.fixture
def make_client():
    def _make_client(first_name: str = "Jane", last_name: str = "Doe", **kwargs) -> Client:
        return Client.create(first_name=first_name, last_name=last_name, **kwargs)

    return _make_client


@pytest.fixture
def make_service_type():
    def _make_service_type(name: str = "Hotel") -> ServiceType:
        return ServiceType.create(name=name)

    return _make_service_type


@pytest.fixture
def make_vendor():
    def _make_vendor(
        name: str = "Sunny Hotels",
        commission_rate: Decimal | str = Decimal("10"),
        service_types=(),
        **kwargs,
    ) -> Vendor:
        vendor = Vendor.create(name=name, commission_rate=Decimal(str(commission_rate)), **kwargs)
        for st in service_types:
            VendorServiceType.create(vendor=vendor, service_type=st)
        return vendor

    return _make_vendor


@pytest.fixture
def make_booking(make_vendor, make_service_type):
    def _make_booking(
        vendor: Vendor | None = None,
        service_type: ServiceType | None = None,
        clients=(),
        cost: Decimal | str = Decimal("1000"),
        commission_rate: Decimal | str | None = None,
        start_date: date = date(2024, 6, 15),
        **kwargs,
    ) -> Booking:
        vendor = vendor or make_vendor()
        service_type = service_type or ServiceType.get_or_none(name="Hotel") or make_service_type()
        booking = Booking.create(
            vendor=vendor,
            service_type=service_type,
            cost=Decimal(str(cost)),
            commission_rate=Decimal(str(commission_rate or vendor.commission_rate)),
            start_date=start_date,
            **kwargs,
        )
        for client in clients:
            BookingClient.create(booking=booking, client=client)
        return booking

    return _make_booking


@pytest.fixture
def api_client():
    from app.main import app

    return TestClient(app)


@pytest.fixture
def headers_for():
    def _headers_for(session: UserSession) -> dict:
        return {"X-Profile-Id": str(session.profile_id)}

    return _headers_for
