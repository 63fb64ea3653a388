"""Сервисные функции для работы с поездками."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import date

from database.db import db
from database.models import Client, Profile, Trip, TripClient, TripStatus
from services.access import UserSession
from services.audit_log_service import add_audit_log
from services.bookings import BookingRowDTO, list_booking_rows
from services.clients.client_service import get_clients_by_ids
from services.filters import TripFilters, filter_trips
from services.validators import FieldValidationError, NotFoundError, optional_text, require_text
from utils.time_utils import parse_date

logger = logging.getLogger(__name__)


class TripNotFoundError(NotFoundError):
    def __init__(self, trip_id: int):
        super().__init__(f"Trip id={trip_id} not found")
        self.trip_id = trip_id


@dataclass
class TripRowDTO:
    id: int
    name: str
    status: str
    start_date: date
    end_date: date
    is_high_priority: bool = False
    description: str | None = None
    notes: str | None = None
    agent_id: int | None = None
    client_ids: list[int] = field(default_factory=list)
    client_names: list[str] = field(default_factory=list)


@dataclass
class TripDetailsDTO(TripRowDTO):
    bookings: list[BookingRowDTO] = field(default_factory=list)


@dataclass(frozen=True)
class TripCreateCommand:
    name: str
    start_date: date
    end_date: date
    client_ids: tuple[int, ...] = ()
    status: str | None = None
    is_high_priority: bool = False
    description: str | None = None
    notes: str | None = None
    agent_id: int | None = None

    def to_payload(self) -> dict:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class TripUpdateCommand:
    id: int
    name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    client_ids: tuple[int, ...] | None = None
    is_high_priority: bool | None = None
    description: str | None = None
    notes: str | None = None
    agent_id: int | None = None

    def to_payload(self) -> dict:
        return {
            key: value
            for key, value in asdict(self).items()
            if key != "id" and value is not None
        }


# ──────────────────────────── Получение ─────────────────────────────


def get_trip(trip_id: int) -> Trip:
    trip = Trip.get_or_none(Trip.id == trip_id)
    if trip is None:
        raise TripNotFoundError(trip_id)
    return trip


def _clients_by_trip(trip_ids: list[int]) -> dict[int, list[Client]]:
    clients: dict[int, list[Client]] = {i: [] for i in trip_ids}
    if not trip_ids:
        return clients
    links = (
        TripClient.select(TripClient.trip, Client)
        .join(Client)
        .where(TripClient.trip.in_(trip_ids))
        .order_by(TripClient.id)
    )
    for link in links:
        clients[link.trip_id].append(link.client)
    return clients


def _row_from_model(trip: Trip, clients: list[Client], cls=TripRowDTO):
    return cls(
        id=trip.id,
        name=trip.name,
        status=trip.status,
        start_date=trip.start_date,
        end_date=trip.end_date,
        is_high_priority=trip.is_high_priority,
        description=trip.description,
        notes=trip.notes,
        agent_id=trip.agent_id,
        client_ids=[c.id for c in clients],
        client_names=[c.full_name for c in clients],
    )


def list_trip_rows(filters: TripFilters | None = None) -> list[TripRowDTO]:
    """Поездки с именами клиентов, ближайшие сверху."""
    trips = list(Trip.select().order_by(Trip.start_date.desc(), Trip.id.desc()))
    clients = _clients_by_trip([t.id for t in trips])
    rows = [_row_from_model(t, clients[t.id]) for t in trips]
    return filter_trips(rows, filters)


def get_trip_detail_dto(trip_id: int) -> TripDetailsDTO:
    trip = get_trip(trip_id)
    detail = _row_from_model(trip, _clients_by_trip([trip.id])[trip.id], TripDetailsDTO)
    detail.bookings = list_booking_rows(trip_id=trip.id)
    return detail


# ──────────────────────────── Изменение ─────────────────────────────


def _parse_day(field_name: str, value) -> date:
    try:
        day = parse_date(value)
    except ValueError:
        raise FieldValidationError(field_name, f"{field_name} must be a date (YYYY-MM-DD)") from None
    if day is None:
        raise FieldValidationError(field_name, f"{field_name} is required")
    return day


def _parse_status(value) -> str:
    try:
        return TripStatus(getattr(value, "value", value)).value
    except ValueError:
        allowed = ", ".join(s.value for s in TripStatus)
        raise FieldValidationError("status", f"status must be one of: {allowed}") from None


def _clean_trip_data(kwargs: dict, *, partial: bool) -> dict:
    clean: dict = {}
    if "name" in kwargs or not partial:
        clean["name"] = require_text("name", kwargs.get("name"))
    for key in ("start_date", "end_date"):
        if key in kwargs or not partial:
            clean[key] = _parse_day(key, kwargs.get(key))
    if "status" in kwargs:
        clean["status"] = _parse_status(kwargs["status"])
    if "is_high_priority" in kwargs:
        clean["is_high_priority"] = bool(kwargs["is_high_priority"])
    for key in ("description", "notes"):
        if key in kwargs:
            clean[key] = optional_text(kwargs[key])
    if "agent_id" in kwargs:
        agent_id = kwargs["agent_id"]
        agent = Profile.get_or_none(Profile.id == agent_id) if agent_id else None
        if agent_id and agent is None:
            raise FieldValidationError("agent_id", f"agent_id: record {agent_id} not found")
        clean["agent"] = agent
    return clean


def _check_dates(trip: Trip) -> None:
    if trip.end_date < trip.start_date:
        raise FieldValidationError("end_date", "end_date cannot be before start_date")


def _set_trip_clients(trip: Trip, client_ids: Iterable[int]) -> None:
    clients = get_clients_by_ids(client_ids)
    TripClient.delete().where(TripClient.trip == trip).execute()
    for client in clients:
        TripClient.create(trip=trip, client=client)


def add_trip(
    session: UserSession | None = None,
    *,
    client_ids: Iterable[int] = (),
    **kwargs,
) -> Trip:
    """Создать поездку со списком клиентов."""
    clean_data = _clean_trip_data(kwargs, partial=False)
    if "agent" not in clean_data and session is not None:
        clean_data["agent"] = session.profile_id
    trip = Trip(**clean_data)
    _check_dates(trip)
    with db.atomic():
        trip.save()
        _set_trip_clients(trip, client_ids)
    logger.info("✅ Trip id=%s: %s created", trip.id, trip.name)
    add_audit_log(session, "create", "trip", trip.id, {"name": trip.name})
    return trip


def update_trip(
    trip: Trip,
    session: UserSession | None = None,
    *,
    client_ids: Iterable[int] | None = None,
    **kwargs,
) -> Trip:
    clean_data = _clean_trip_data(kwargs, partial=True)
    for key, value in clean_data.items():
        setattr(trip, key, value)
    _check_dates(trip)
    with db.atomic():
        if clean_data:
            trip.save()
        if client_ids is not None:
            _set_trip_clients(trip, client_ids)
    logger.info("✏️ Trip id=%s updated: %s", trip.id, sorted(clean_data))
    add_audit_log(session, "update", "trip", trip.id, {"fields": sorted(clean_data)})
    return trip


def set_trip_status(trip_id: int, status, session: UserSession | None = None) -> Trip:
    trip = get_trip(trip_id)
    new_status = _parse_status(status)
    old_status = trip.status
    trip.status = new_status
    with db.atomic():
        trip.save(only=[Trip.status])
    logger.info("🔁 Trip id=%s status: %s → %s", trip.id, old_status, new_status)
    add_audit_log(session, "status_change", "trip", trip.id, {"from": old_status, "to": new_status})
    return trip


def delete_trip(trip_id: int, session: UserSession | None = None) -> None:
    """Удалить поездку; бронирования остаются без привязки к поездке."""
    trip = get_trip(trip_id)
    with db.atomic():
        trip.delete_instance()
    logger.info("🗑 Trip id=%s deleted", trip_id)
    add_audit_log(session, "delete", "trip", trip_id, {"name": trip.name})


def create_trip_from_command(
    command: TripCreateCommand, session: UserSession | None = None
) -> TripDetailsDTO:
    trip = add_trip(session, **command.to_payload())
    return get_trip_detail_dto(trip.id)


def update_trip_from_command(
    command: TripUpdateCommand, session: UserSession | None = None
) -> TripDetailsDTO:
    trip = get_trip(command.id)
    update_trip(trip, session, **command.to_payload())
    return get_trip_detail_dto(trip.id)
