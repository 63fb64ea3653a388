"""In-memory filtering of list rows.

Every ``*Filters`` dataclass turns its populated criteria into predicates;
:func:`apply_filters` keeps the rows matching all of them (AND across
criteria, OR inside a multi-select criterion) and preserves row order.
Unset criteria, including empty multi-selects, add no predicate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Sequence, TypeVar

from utils.money import to_decimal

T = TypeVar("T")
Predicate = Callable[[Any], bool]


# ───────────────────────────── primitives ─────────────────────────────


def _norm(text: Any) -> str:
    return str(text or "").strip().lower()


def contains_text(value: Any, term: str) -> bool:
    """Case-insensitive substring match."""
    return _norm(term) in _norm(value)


def any_contains(values: Iterable[Any], term: str) -> bool:
    return any(contains_text(v, term) for v in values)


def _status_value(value: Any) -> str:
    return str(getattr(value, "value", value))


def _as_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    return None


@dataclass(frozen=True)
class DateRange:
    """Inclusive date interval; either bound may be open."""

    date_from: date | None = None
    date_to: date | None = None

    def is_set(self) -> bool:
        return self.date_from is not None or self.date_to is not None

    def contains(self, value: Any) -> bool:
        day = _as_date(value)
        if day is None:
            return False
        if self.date_from is not None and day < self.date_from:
            return False
        if self.date_to is not None and day > self.date_to:
            return False
        return True


@dataclass(frozen=True)
class NumericRange:
    """Inclusive numeric interval; either bound may be open."""

    low: Decimal | None = None
    high: Decimal | None = None

    def is_set(self) -> bool:
        return self.low is not None or self.high is not None

    def contains(self, value: Any) -> bool:
        if value is None:
            return False
        number = to_decimal(value)
        if self.low is not None and number < to_decimal(self.low):
            return False
        if self.high is not None and number > to_decimal(self.high):
            return False
        return True


def _one_of(getter: Callable[[Any], Any], wanted: Sequence[Any]) -> Predicate:
    allowed = {_status_value(w) for w in wanted}
    return lambda row: _status_value(getter(row)) in allowed


def _any_name_of(getter: Callable[[Any], Iterable[str]], wanted: Sequence[str]) -> Predicate:
    allowed = {_norm(w) for w in wanted}
    return lambda row: any(_norm(name) in allowed for name in getter(row))


def apply_filters(records: Iterable[T], criteria: Any | None) -> list[T]:
    """Return the records matching every populated criterion, in order."""
    rows = list(records)
    if criteria is None:
        return rows
    predicates = criteria.predicates()
    if not predicates:
        return rows
    return [row for row in rows if all(p(row) for p in predicates)]


def count_active_filters(criteria: Any) -> int:
    """Number of populated criteria (shown on the "Filters" button)."""
    return len(criteria.predicates())


# ───────────────────────────── bookings ─────────────────────────────


@dataclass
class BookingFilters:
    client_search_term: str = ""
    search_term: str = ""
    service_types: Sequence[str] = ()
    date_range: DateRange = field(default_factory=DateRange)
    booking_statuses: Sequence[Any] = ()
    commission_statuses: Sequence[Any] = ()

    def predicates(self) -> list[Predicate]:
        preds: list[Predicate] = []
        if self.client_search_term.strip():
            term = self.client_search_term
            preds.append(lambda row: any_contains(row.client_names, term))
        if self.search_term.strip():
            term = self.search_term
            preds.append(
                lambda row: any_contains(
                    [
                        " ".join(row.client_names),
                        row.vendor_name,
                        row.trip_name,
                        row.service_type_name,
                        row.location,
                    ],
                    term,
                )
            )
        if self.service_types:
            preds.append(
                _any_name_of(lambda row: [row.service_type_name], self.service_types)
            )
        if self.date_range.is_set():
            date_range = self.date_range
            preds.append(lambda row: date_range.contains(row.start_date))
        if self.booking_statuses:
            preds.append(_one_of(lambda row: row.booking_status, self.booking_statuses))
        if self.commission_statuses:
            preds.append(
                _one_of(lambda row: row.commission_status, self.commission_statuses)
            )
        return preds


def filter_bookings(records: Iterable[T], criteria: BookingFilters | None = None) -> list[T]:
    return apply_filters(records, criteria)


# ───────────────────────────── vendors ─────────────────────────────


@dataclass
class VendorFilters:
    search_term: str = ""
    service_types: Sequence[str] = ()
    tags: Sequence[str] = ()
    price_range: NumericRange = field(default_factory=NumericRange)
    commission_range: NumericRange = field(default_factory=NumericRange)
    rating_minimum: Decimal | None = None

    def predicates(self) -> list[Predicate]:
        preds: list[Predicate] = []
        if self.search_term.strip():
            term = self.search_term
            preds.append(
                lambda row: contains_text(row.name, term)
                or contains_text(row.contact_person, term)
                or any_contains(row.service_type_names, term)
                or any_contains(row.tag_names, term)
            )
        if self.service_types:
            preds.append(_any_name_of(lambda row: row.service_type_names, self.service_types))
        if self.tags:
            preds.append(_any_name_of(lambda row: row.tag_names, self.tags))
        if self.price_range.is_set():
            price_range = self.price_range
            preds.append(lambda row: price_range.contains(row.price_range))
        if self.commission_range.is_set():
            commission_range = self.commission_range
            preds.append(lambda row: commission_range.contains(row.commission_rate))
        if self.rating_minimum is not None and to_decimal(self.rating_minimum) > 0:
            floor = NumericRange(low=to_decimal(self.rating_minimum))
            preds.append(lambda row: floor.contains(row.rating))
        return preds


def filter_vendors(records: Iterable[T], criteria: VendorFilters | None = None) -> list[T]:
    return apply_filters(records, criteria)


# ─────────────────────────── clients & trips ───────────────────────────


@dataclass
class ClientFilters:
    search_term: str = ""

    def predicates(self) -> list[Predicate]:
        if not self.search_term.strip():
            return []
        term = self.search_term
        return [lambda row: contains_text(f"{row.first_name} {row.last_name}", term)]


def filter_clients(records: Iterable[T], criteria: ClientFilters | None = None) -> list[T]:
    return apply_filters(records, criteria)


@dataclass
class TripFilters:
    search_term: str = ""
    statuses: Sequence[Any] = ()
    high_priority_only: bool = False

    def predicates(self) -> list[Predicate]:
        preds: list[Predicate] = []
        if self.search_term.strip():
            term = self.search_term
            preds.append(
                lambda row: contains_text(row.name, term)
                or contains_text(" ".join(row.client_names), term)
            )
        if self.statuses:
            preds.append(_one_of(lambda row: row.status, self.statuses))
        if self.high_priority_only:
            preds.append(lambda row: bool(row.is_high_priority))
        return preds


def filter_trips(records: Iterable[T], criteria: TripFilters | None = None) -> list[T]:
    return apply_filters(records, criteria)


# ─────────────────────── commissions, agents, reference ───────────────────────


@dataclass
class CommissionFilters:
    search_term: str = ""
    commission_statuses: Sequence[Any] = ()

    def predicates(self) -> list[Predicate]:
        preds: list[Predicate] = []
        if self.search_term.strip():
            term = self.search_term
            preds.append(
                lambda row: any_contains(row.client_names, term)
                or contains_text(row.vendor_name, term)
                or contains_text(row.agent_name, term)
            )
        if self.commission_statuses:
            preds.append(
                _one_of(lambda row: row.commission_status, self.commission_statuses)
            )
        return preds


@dataclass
class AgentFilters:
    search_term: str = ""

    def predicates(self) -> list[Predicate]:
        if not self.search_term.strip():
            return []
        term = self.search_term
        return [
            lambda row: contains_text(row.full_name, term) or contains_text(row.email, term)
        ]


@dataclass
class LocationTagFilters:
    search_term: str = ""

    def predicates(self) -> list[Predicate]:
        if not self.search_term.strip():
            return []
        term = self.search_term
        return [
            lambda row: any_contains(
                [row.continent, row.country, row.state_province, row.city], term
            )
        ]


@dataclass
class NameFilters:
    """Search over the ``name`` of tags and service types."""

    search_term: str = ""

    def predicates(self) -> list[Predicate]:
        if not self.search_term.strip():
            return []
        term = self.search_term
        return [lambda row: contains_text(row.name, term)]
