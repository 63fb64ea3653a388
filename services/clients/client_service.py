"""Сервисный модуль для управления клиентами."""

import logging

from peewee import ModelSelect, fn

from database.db import db
from database.models import Booking, BookingClient, Client, ServiceType, Trip, TripClient, Vendor
from services.access import UserSession
from services.audit_log_service import add_audit_log
from services.filters import ClientFilters, filter_clients
from services.validators import NotFoundError, normalize_person_name, optional_text, require_text
from .dto import (
    ClientBookingInfo,
    ClientCreateCommand,
    ClientDTO,
    ClientDetailsDTO,
    ClientTripInfo,
    ClientUpdateCommand,
)

logger = logging.getLogger(__name__)

CLIENT_ALLOWED_FIELDS = {"first_name", "last_name", "notes"}


class ClientNotFoundError(NotFoundError):
    """Ошибка отсутствия клиента по запрошенному идентификатору."""

    def __init__(self, client_id: int):
        super().__init__(f"Client id={client_id} not found")
        self.client_id = client_id


# ──────────────────────────── Получение ─────────────────────────────


def get_all_clients() -> ModelSelect:
    """Все клиенты в алфавитном порядке."""
    return Client.select().order_by(fn.LOWER(Client.last_name), fn.LOWER(Client.first_name))


def get_client_by_id(client_id: int) -> Client | None:
    return Client.get_or_none(Client.id == client_id)


def list_client_rows(filters: ClientFilters | None = None) -> list[ClientDTO]:
    """Список клиентов, отфильтрованный в памяти."""
    rows = [ClientDTO.from_model(c) for c in get_all_clients()]
    return filter_clients(rows, filters)


def get_client_detail_dto(client_id: int) -> ClientDetailsDTO:
    """Клиент вместе с его поездками и бронированиями."""
    client = get_client_by_id(client_id)
    if client is None:
        raise ClientNotFoundError(client_id)

    trips = (
        Trip.select()
        .join(TripClient)
        .where(TripClient.client == client)
        .order_by(Trip.start_date.desc())
    )
    bookings = (
        Booking.select(Booking, Vendor, ServiceType)
        .join(BookingClient)
        .switch(Booking)
        .join(Vendor)
        .switch(Booking)
        .join(ServiceType)
        .where(BookingClient.client == client)
        .order_by(Booking.start_date.desc())
    )
    base = ClientDTO.from_model(client)
    return ClientDetailsDTO(
        **vars(base),
        trips=[
            ClientTripInfo(
                id=t.id,
                name=t.name,
                status=t.status,
                start_date=t.start_date,
                end_date=t.end_date,
            )
            for t in trips
        ],
        bookings=[
            ClientBookingInfo(
                id=b.id,
                vendor_name=b.vendor.name,
                service_type_name=b.service_type.name,
                start_date=b.start_date,
                cost=b.cost,
                booking_status=b.booking_status,
            )
            for b in bookings
        ],
    )


def get_clients_by_ids(client_ids) -> list[Client]:
    """Клиенты по списку id; неизвестные id приводят к ошибке."""
    ids = list(dict.fromkeys(int(i) for i in client_ids))
    if not ids:
        return []
    found = {c.id: c for c in Client.select().where(Client.id.in_(ids))}
    for client_id in ids:
        if client_id not in found:
            raise ClientNotFoundError(client_id)
    return [found[i] for i in ids]


# ──────────────────────────── Изменение ─────────────────────────────


def _clean_client_data(kwargs: dict, *, partial: bool) -> dict:
    clean = {key: kwargs[key] for key in CLIENT_ALLOWED_FIELDS if key in kwargs}
    for key in ("first_name", "last_name"):
        if key in clean or not partial:
            clean[key] = normalize_person_name(require_text(key, clean.get(key)))
    if "notes" in clean:
        clean["notes"] = optional_text(clean["notes"])
    return clean


def add_client(session: UserSession | None = None, **kwargs) -> Client:
    """Создать клиента."""
    clean_data = _clean_client_data(kwargs, partial=False)
    with db.atomic():
        client = Client.create(**clean_data)
    logger.info("✅ Client id=%s: %s created", client.id, client.full_name)
    add_audit_log(session, "create", "client", client.id, {"name": client.full_name})
    return client


def update_client(client: Client, session: UserSession | None = None, **kwargs) -> Client:
    """Обновить поля клиента; ``last_updated`` выставляется автоматически."""
    clean_data = _clean_client_data(kwargs, partial=True)
    if not clean_data:
        return client
    for key, value in clean_data.items():
        setattr(client, key, value)
    with db.atomic():
        client.save()
    logger.info("✏️ Client id=%s updated: %s", client.id, sorted(clean_data))
    add_audit_log(session, "update", "client", client.id, {"fields": sorted(clean_data)})
    return client


def delete_client(client_id: int, session: UserSession | None = None) -> None:
    client = get_client_by_id(client_id)
    if client is None:
        raise ClientNotFoundError(client_id)
    with db.atomic():
        client.delete_instance()
    logger.info("🗑 Client id=%s deleted", client_id)
    add_audit_log(session, "delete", "client", client_id, {"name": client.full_name})


def create_client_from_command(
    command: ClientCreateCommand, session: UserSession | None = None
) -> ClientDetailsDTO:
    client = add_client(session, **command.to_payload())
    return get_client_detail_dto(client.id)


def update_client_from_command(
    command: ClientUpdateCommand, session: UserSession | None = None
) -> ClientDetailsDTO:
    client = get_client_by_id(command.id)
    if client is None:
        raise ClientNotFoundError(command.id)
    update_client(client, session, **command.to_payload())
    return get_client_detail_dto(client.id)


# ──────────────────────────── Имена для списков ─────────────────────────────


def client_names_for_bookings(booking_ids) -> dict[int, list[str]]:
    """``booking_id -> [client full names]`` одним запросом."""
    ids = list(booking_ids)
    names: dict[int, list[str]] = {i: [] for i in ids}
    if not ids:
        return names
    links = (
        BookingClient.select(BookingClient.booking, Client)
        .join(Client)
        .where(BookingClient.booking.in_(ids))
        .order_by(BookingClient.id)
    )
    for link in links:
        names[link.booking_id].append(link.client.full_name)
    return names


def client_names_for_trips(trip_ids) -> dict[int, list[str]]:
    """``trip_id -> [client full names]`` одним запросом."""
    ids = list(trip_ids)
    names: dict[int, list[str]] = {i: [] for i in ids}
    if not ids:
        return names
    links = (
        TripClient.select(TripClient.trip, Client)
        .join(Client)
        .where(TripClient.trip.in_(ids))
        .order_by(TripClient.id)
    )
    for link in links:
        names[link.trip_id].append(link.client.full_name)
    return names
