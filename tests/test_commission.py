from decimal import Decimal
from types import SimpleNamespace

import pytest

from services.commission import (
    BookingCommissionForm,
    ServiceTypeOption,
    VendorCommissionProfile,
    agent_commission_share,
    compute_commission,
    format_commission,
    narrow_service_types,
    summarize_commissions,
)

HOTEL = ServiceTypeOption(1, "Hotel")
FLIGHT = ServiceTypeOption(2, "Flight")
TOUR = ServiceTypeOption(3, "Tour")
ALL_TYPES = [HOTEL, FLIGHT, TOUR]


def test_compute_commission_examples():
    assert compute_commission(1000, 10) == Decimal("100")
    assert compute_commission(0, 50) == Decimal("0")
    assert compute_commission(250.5, 7.25) == Decimal("18.16125")
    assert compute_commission("99.99", "0") == 0


def test_compute_commission_treats_blank_as_zero():
    assert compute_commission(None, 10) == 0
    assert compute_commission("", "") == 0


def test_compute_commission_rejects_garbage():
    with pytest.raises(ValueError):
        compute_commission("abc", 10)


def test_format_commission_rounds_to_cents():
    assert format_commission(Decimal("18.16125")) == "$18.16"
    assert format_commission(Decimal("1234.5")) == "$1,234.50"
    assert format_commission(Decimal("-5")) == "-$5.00"


def test_agent_share():
    assert agent_commission_share(Decimal("100"), Decimal("40")) == Decimal("40")
    assert agent_commission_share(Decimal("100"), None) == 0


def _loader(profiles):
    def load(vendor_id):
        return profiles[vendor_id]

    return load


def test_vendor_selection_copies_rate_and_narrows_service_types():
    form = BookingCommissionForm(
        ALL_TYPES,
        _loader({7: VendorCommissionProfile(7, Decimal("12.5"), frozenset({1, 3}))}),
        cost=Decimal("800"),
    )
    assert form.on_vendor_selected(7) is True
    assert form.commission_rate == Decimal("12.5")
    assert form.available_service_types == [HOTEL, TOUR]
    assert form.commission_amount == Decimal("100")
    assert form.rate_locked


def test_vendor_without_service_types_keeps_full_list():
    form = BookingCommissionForm(
        ALL_TYPES, _loader({1: VendorCommissionProfile(1, Decimal("5"))})
    )
    form.on_vendor_selected(1)
    assert form.available_service_types == ALL_TYPES


def test_selected_service_type_cleared_when_not_offered():
    form = BookingCommissionForm(
        ALL_TYPES,
        _loader({1: VendorCommissionProfile(1, Decimal("5"), frozenset({1}))}),
        service_type_id=2,
    )
    form.on_vendor_selected(1)
    assert form.service_type_id is None

    form.service_type_id = 1
    form.on_vendor_selected(1)
    assert form.service_type_id == 1


def test_loader_failure_keeps_previous_state():
    def failing(_vendor_id):
        raise ConnectionError("network down")

    form = BookingCommissionForm(ALL_TYPES, failing, cost=Decimal("200"), commission_rate=Decimal("8"))
    assert form.on_vendor_selected(5) is False
    assert form.commission_rate == Decimal("8")
    assert form.available_service_types == ALL_TYPES
    assert form.vendor_id is None
    assert "network down" in form.error


def test_amount_follows_cost_changes():
    form = BookingCommissionForm(ALL_TYPES, _loader({}), commission_rate=Decimal("10"))
    form.set_cost("1500")
    assert form.commission_amount == Decimal("150")
    assert form.commission_display == "$150.00"


def test_rate_is_read_only_after_vendor_selected():
    form = BookingCommissionForm(
        ALL_TYPES, _loader({1: VendorCommissionProfile(1, Decimal("5"))})
    )
    form.set_rate("7")
    assert form.commission_rate == Decimal("7")
    form.on_vendor_selected(1)
    with pytest.raises(ValueError):
        form.set_rate("9")


def test_narrow_service_types_keeps_order():
    assert narrow_service_types(ALL_TYPES, {3, 1}) == [HOTEL, TOUR]
    assert narrow_service_types(ALL_TYPES, []) == ALL_TYPES


def _row(amount, booking_status="Confirmed", commission_status="Unreceived", agent_id=1):
    return SimpleNamespace(
        commission_amount=Decimal(amount),
        booking_status=booking_status,
        commission_status=commission_status,
        agent_id=agent_id,
    )


def test_summarize_commissions():
    summary = summarize_commissions(
        [
            _row("100"),
            _row("50", "Pending", "Received", agent_id=2),
            _row("30", "Confirmed", "Completed"),
            _row("999", "Canceled", "Canceled", agent_id=3),
        ]
    )
    assert summary.total_bookings == 4
    assert summary.total_commission == Decimal("180")
    assert summary.confirmed_commission == Decimal("130")
    assert summary.unreceived_commission == Decimal("100")
    assert summary.received_commission == Decimal("50")
    assert summary.completed_commission == Decimal("30")
    assert summary.agent_count == 3


def test_summarize_empty():
    summary = summarize_commissions([])
    assert summary.total_bookings == 0
    assert summary.total_commission == 0
