from datetime import date
from decimal import Decimal

import pytest

from database.models import AuditLog, Booking, BookingStatus, CommissionStatus, Profile, Vendor
from services.access import AccessDeniedError
from services.bookings import (
    BookingCreateCommand,
    BookingNotFoundError,
    BookingUpdateCommand,
    add_booking,
    build_booking_form,
    create_booking_from_command,
    delete_booking,
    get_booking_detail_dto,
    get_commission_summary,
    list_agent_commission_shares,
    list_booking_rows,
    list_commission_rows,
    set_booking_status,
    set_commission_status,
    update_booking_from_command,
    update_booking_rating,
)
from services.commission import VendorCommissionProfile
from services.filters import BookingFilters, CommissionFilters
from services.validators import FieldValidationError


@pytest.fixture
def hotel(make_service_type):
    return make_service_type("Hotel")


def test_create_booking_uses_vendor_rate_and_defaults(agent_session, make_vendor, make_client, hotel):
    vendor = make_vendor(commission_rate="12")
    client = make_client()
    detail = create_booking_from_command(
        BookingCreateCommand(
            vendor_id=vendor.id,
            service_type_id=hotel.id,
            start_date=date(2024, 6, 15),
            client_ids=(client.id,),
            cost="250",
        ),
        agent_session,
    )
    assert detail.commission_rate == Decimal("12")
    assert detail.commission_amount == Decimal("30")
    assert detail.commission_display == "$30.00"
    assert detail.booking_status == BookingStatus.PENDING.value
    assert detail.commission_status == CommissionStatus.UNRECEIVED.value
    assert detail.agent_id == agent_session.profile_id
    assert detail.agent_name == "Anna User"
    assert detail.client_names == ["Jane Doe"]


def test_explicit_rate_wins(make_vendor, hotel):
    vendor = make_vendor(commission_rate="10")
    booking = add_booking(
        vendor_id=vendor.id,
        service_type_id=hotel.id,
        start_date="2024-06-15",
        cost="250.5",
        commission_rate="7.25",
    )
    assert Booking.get_by_id(booking.id).commission_amount == Decimal("18.16125")
    assert get_booking_detail_dto(booking.id).commission_display == "$18.16"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"vendor_id": 999}, "vendor_id"),
        ({"service_type_id": None}, "service_type_id"),
        ({"start_date": "15/06/2024"}, "start_date"),
        ({"end_date": "2024-06-01"}, "end_date"),
        ({"cost": "-5"}, "cost"),
        ({"commission_rate": "120"}, "commission_rate"),
        ({"booking_status": "Lost"}, "booking_status"),
    ],
)
def test_invalid_booking_fields(make_vendor, hotel, overrides, field):
    vendor = make_vendor()
    data = {
        "vendor_id": vendor.id,
        "service_type_id": hotel.id,
        "start_date": "2024-06-15",
        "cost": "100",
    }
    data.update(overrides)
    with pytest.raises(FieldValidationError) as exc:
        add_booking(**data)
    assert exc.value.field == field
    assert Booking.select().count() == 0


def test_unknown_client_rolls_back(make_vendor, hotel):
    vendor = make_vendor()
    with pytest.raises(LookupError):
        add_booking(
            vendor_id=vendor.id, service_type_id=hotel.id, start_date="2024-06-15", client_ids=[42]
        )
    assert Booking.select().count() == 0


def test_update_recomputes_commission(make_booking):
    booking = make_booking(cost="1000", commission_rate="10")
    detail = update_booking_from_command(BookingUpdateCommand(id=booking.id, cost="2000"))
    assert detail.commission_amount == Decimal("200")


def test_changing_vendor_brings_its_rate(make_booking, make_vendor):
    booking = make_booking(cost="1000")
    other = make_vendor("Air Jet", commission_rate="4")
    detail = update_booking_from_command(BookingUpdateCommand(id=booking.id, vendor_id=other.id))
    assert detail.vendor_name == "Air Jet"
    assert detail.commission_rate == Decimal("4")
    assert detail.commission_amount == Decimal("40")


def test_list_rows_newest_first_and_filtered(make_booking, make_client):
    alice = make_client("Alice", "Smith")
    older = make_booking(start_date=date(2024, 5, 1), clients=[alice])
    newer = make_booking(start_date=date(2024, 7, 1))
    assert [r.id for r in list_booking_rows()] == [newer.id, older.id]
    rows = list_booking_rows(BookingFilters(client_search_term="smith"))
    assert [r.id for r in rows] == [older.id]


def test_status_changes_are_audited(agent_session, make_booking):
    booking = make_booking()
    set_booking_status(booking.id, "Confirmed", agent_session)
    assert Booking.get_by_id(booking.id).booking_status == "Confirmed"
    entry = AuditLog.get(AuditLog.action == "status_change")
    assert '"to": "Confirmed"' in entry.details
    with pytest.raises(FieldValidationError):
        set_booking_status(booking.id, "Done", agent_session)


def test_commission_status_requires_admin(agent_session, admin_session, make_booking):
    booking = make_booking()
    with pytest.raises(AccessDeniedError):
        set_commission_status(booking.id, "Received", agent_session)
    set_commission_status(booking.id, CommissionStatus.RECEIVED, admin_session)
    assert Booking.get_by_id(booking.id).commission_status == "Received"


def test_rating_updates_vendor(make_booking):
    booking = make_booking(booking_status="Confirmed")
    update_booking_rating(booking.id, 4, is_completed=True)
    assert Vendor.get_by_id(booking.vendor_id).rating == Decimal("4")
    update_booking_rating(booking.id, None)
    assert Vendor.get_by_id(booking.vendor_id).rating == Decimal("0")
    for bad in (0, 6, "x", True):
        with pytest.raises(FieldValidationError):
            update_booking_rating(booking.id, bad)


def test_deleting_rated_booking_recomputes_rating(make_vendor, make_booking):
    vendor = make_vendor()
    keep = make_booking(vendor, booking_status="Confirmed", is_completed=True, rating=2)
    drop = make_booking(vendor, booking_status="Confirmed", is_completed=True, rating=5)
    update_booking_rating(keep.id, 2)
    delete_booking(drop.id)
    assert Vendor.get_by_id(vendor.id).rating == Decimal("2")
    with pytest.raises(BookingNotFoundError):
        delete_booking(drop.id)


def test_booking_form_cascade(make_vendor, make_service_type):
    hotel = make_service_type("Hotel")
    make_service_type("Flight")
    vendor = make_vendor(commission_rate="12", service_types=[hotel])
    form = build_booking_form(vendor_id=vendor.id, cost="500")
    assert form.commission_rate == Decimal("12")
    assert [st.name for st in form.available_service_types] == ["Hotel"]
    assert form.commission_display == "$60.00"


def test_booking_form_keeps_state_when_loading_fails(make_service_type):
    make_service_type("Hotel")

    def broken(_vendor_id) -> VendorCommissionProfile:
        raise RuntimeError("timeout")

    form = build_booking_form(vendor_id=3, cost="100", commission_rate="5", loader=broken)
    assert form.commission_rate == Decimal("5")
    assert form.vendor_id is None
    assert form.error


def test_commission_screen(admin_session, agent_session, make_booking):
    agent = Profile.get_by_id(agent_session.profile_id)
    agent.agent_commission_percentage = Decimal("40")
    agent.save()

    make_booking(cost="1000", agent=agent, booking_status="Confirmed")
    make_booking(cost="500", agent=agent, commission_status="Received")
    make_booking(cost="9000", agent=agent, booking_status="Canceled")

    with pytest.raises(AccessDeniedError):
        list_commission_rows(agent_session)

    summary = get_commission_summary(admin_session)
    assert summary.total_bookings == 3
    assert summary.total_commission == Decimal("150")
    assert summary.confirmed_commission == Decimal("100")
    assert summary.received_commission == Decimal("50")
    assert summary.agent_count == 1

    received = list_commission_rows(admin_session, CommissionFilters(commission_statuses=["Received"]))
    assert len(received) == 1

    shares = list_agent_commission_shares(admin_session)
    assert len(shares) == 1
    assert shares[0].commission_total == Decimal("150")
    assert shares[0].agent_share == Decimal("60")


@pytest.mark.parametrize(
    "cost, rate, expected_cost, expected_amount",
    [
        ("1,200", "10", Decimal("1200"), Decimal("120")),
        ("1,200.50", "10%", Decimal("1200.50"), Decimal("120.05")),
        ("12,5", "10", Decimal("12.5"), Decimal("1.25")),
    ],
)
def test_cost_and_rate_keep_their_value(make_vendor, hotel, cost, rate, expected_cost, expected_amount):
    vendor = make_vendor(commission_rate="5")
    booking = add_booking(
        vendor_id=vendor.id,
        service_type_id=hotel.id,
        start_date="2024-06-15",
        cost=cost,
        commission_rate=rate,
    )
    stored = Booking.get_by_id(booking.id)
    assert stored.cost == expected_cost
    assert stored.commission_amount == expected_amount


def test_amount_follows_cost_rounded_to_cents(make_vendor, hotel):
    vendor = make_vendor(commission_rate="10")
    booking = add_booking(
        vendor_id=vendor.id, service_type_id=hotel.id, start_date="2024-06-15", cost="100.005"
    )
    assert booking.cost == Decimal("100.01")
    stored = Booking.get_by_id(booking.id)
    assert stored.cost == Decimal("100.01")
    assert stored.commission_amount == Decimal("10.001")
    assert stored.commission_amount == stored.cost * stored.commission_rate / 100


def test_save_rounds_cost_and_rate_set_directly(make_booking):
    booking = make_booking(cost="19.999", commission_rate="3.33335")
    assert booking.cost == Decimal("20.00")
    assert booking.commission_rate == Decimal("3.3334")
    assert booking.commission_amount == Decimal("20.00") * Decimal("3.3334") / 100


def test_booking_form_reads_amounts_like_save(make_service_type):
    make_service_type("Hotel")
    form = build_booking_form(cost="1,200", commission_rate="10%")
    assert form.cost == Decimal("1200")
    assert form.commission_amount == Decimal("120")
