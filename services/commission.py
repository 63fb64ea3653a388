"""Commission arithmetic and the booking form's vendor -> rate cascade.

Nothing here touches the database: vendor data reaches
:class:`BookingCommissionForm` through a loader callable, so the module can
be imported by :mod:`database.models` without a cycle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Iterable, Sequence

from utils.money import format_usd, to_decimal

logger = logging.getLogger(__name__)

_HUNDRED = Decimal("100")


def compute_commission(cost: Any, rate_percent: Any) -> Decimal:
    """Return ``cost * rate_percent / 100`` without rounding."""
    return to_decimal(cost) * to_decimal(rate_percent) / _HUNDRED


def format_commission(amount: Any) -> str:
    """Display form of a commission amount, rounded to cents."""
    return format_usd(amount)


def agent_commission_share(commission_amount: Any, agent_percentage: Any) -> Decimal:
    """Part of a booking commission owed to the agent."""
    if agent_percentage is None:
        return Decimal("0")
    return compute_commission(commission_amount, agent_percentage)


# ───────────────────────── booking form cascade ─────────────────────────


@dataclass(frozen=True)
class ServiceTypeOption:
    id: int
    name: str


@dataclass(frozen=True)
class VendorCommissionProfile:
    """What the booking form needs to know about a selected vendor."""

    vendor_id: int
    commission_rate: Decimal
    service_type_ids: frozenset[int] = frozenset()


VendorProfileLoader = Callable[[int], VendorCommissionProfile]


@dataclass
class BookingCommissionForm:
    """Derived state of the commission part of the booking form.

    ``commission_rate`` and ``available_service_types`` are functions of the
    selected vendor and only change through :meth:`on_vendor_selected`.
    ``commission_amount`` is recomputed from the current cost and rate on
    every access.
    """

    all_service_types: Sequence[ServiceTypeOption]
    loader: VendorProfileLoader
    cost: Decimal = Decimal("0")
    commission_rate: Decimal = Decimal("0")
    vendor_id: int | None = None
    service_type_id: int | None = None
    available_service_types: list[ServiceTypeOption] = field(default_factory=list)
    error: str | None = None

    def __post_init__(self) -> None:
        self.cost = to_decimal(self.cost)
        self.commission_rate = to_decimal(self.commission_rate)
        if not self.available_service_types:
            self.available_service_types = list(self.all_service_types)

    @property
    def rate_locked(self) -> bool:
        """Rate comes from the vendor once one is chosen."""
        return self.vendor_id is not None

    @property
    def commission_amount(self) -> Decimal:
        return compute_commission(self.cost, self.commission_rate)

    @property
    def commission_display(self) -> str:
        return format_commission(self.commission_amount)

    def set_cost(self, cost: Any) -> None:
        self.cost = to_decimal(cost)

    def set_rate(self, rate: Any) -> None:
        if self.rate_locked:
            raise ValueError("Commission rate is taken from the selected vendor")
        self.commission_rate = to_decimal(rate)

    def on_vendor_selected(self, vendor_id: int) -> bool:
        """Apply the vendor's rate and service types.

        Returns ``False`` when the vendor could not be loaded; in that case
        the previous rate and service type choices stay in place and
        :attr:`error` holds the message to show.
        """
        try:
            profile = self.loader(vendor_id)
        except Exception as exc:
            logger.warning("❌ Failed to load commission rate for vendor %s: %s", vendor_id, exc)
            self.error = f"Could not load vendor commission rate: {exc}"
            return False

        self.error = None
        self.vendor_id = vendor_id
        self.commission_rate = to_decimal(profile.commission_rate)
        self.available_service_types = narrow_service_types(
            self.all_service_types, profile.service_type_ids
        )
        available_ids = {st.id for st in self.available_service_types}
        if self.service_type_id not in available_ids:
            self.service_type_id = None
        return True

    def as_dict(self) -> dict:
        return {
            "vendor_id": self.vendor_id,
            "service_type_id": self.service_type_id,
            "cost": self.cost,
            "commission_rate": self.commission_rate,
            "commission_amount": self.commission_amount,
            "commission_display": self.commission_display,
            "rate_locked": self.rate_locked,
            "available_service_types": [
                {"id": st.id, "name": st.name} for st in self.available_service_types
            ],
            "error": self.error,
        }


def narrow_service_types(
    all_service_types: Iterable[ServiceTypeOption], vendor_service_type_ids: Iterable[int]
) -> list[ServiceTypeOption]:
    """Service types offered by the vendor; all of them if the vendor has none."""
    options = list(all_service_types)
    allowed = set(vendor_service_type_ids)
    if not allowed:
        return options
    return [st for st in options if st.id in allowed]


# ───────────────────────── commission summary ─────────────────────────


@dataclass
class CommissionSummary:
    total_bookings: int = 0
    total_commission: Decimal = Decimal("0")
    confirmed_commission: Decimal = Decimal("0")
    agent_count: int = 0
    unreceived_commission: Decimal = Decimal("0")
    received_commission: Decimal = Decimal("0")
    completed_commission: Decimal = Decimal("0")


def summarize_commissions(bookings: Iterable[Any]) -> CommissionSummary:
    """Aggregate commission totals over booking rows.

    Rows need ``commission_amount``, ``booking_status``, ``commission_status``
    and ``agent_id``. Canceled bookings count towards ``total_bookings`` only.
    """
    summary = CommissionSummary()
    agents: set = set()
    for booking in bookings:
        summary.total_bookings += 1
        agent_id = getattr(booking, "agent_id", None)
        if agent_id is not None:
            agents.add(agent_id)

        booking_status = _value(booking.booking_status)
        if booking_status == "Canceled":
            continue
        amount = to_decimal(booking.commission_amount)
        summary.total_commission += amount
        if booking_status == "Confirmed":
            summary.confirmed_commission += amount

        commission_status = _value(booking.commission_status)
        if commission_status == "Unreceived":
            summary.unreceived_commission += amount
        elif commission_status == "Received":
            summary.received_commission += amount
        elif commission_status == "Completed":
            summary.completed_commission += amount
    summary.agent_count = len(agents)
    return summary


def _value(status: Any) -> str:
    return getattr(status, "value", status)
