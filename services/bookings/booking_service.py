"""Сервисные функции для работы с бронированиями и комиссиями."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from peewee import JOIN

from database.db import db
from database.models import (
    MONEY_PLACES,
    RATE_PLACES,
    Booking,
    BookingClient,
    BookingStatus,
    Client,
    CommissionStatus,
    LocationTag,
    Profile,
    ServiceType,
    Trip,
    UserRole,
    Vendor,
)
from services.access import UserSession, require_role
from services.audit_log_service import add_audit_log
from services.clients.client_service import get_clients_by_ids
from services.commission import (
    BookingCommissionForm,
    CommissionSummary,
    ServiceTypeOption,
    agent_commission_share,
    summarize_commissions,
)
from services.filters import BookingFilters, CommissionFilters, apply_filters, filter_bookings
from services.validators import FieldValidationError, NotFoundError, optional_text, parse_decimal
from services.vendors.vendor_service import (
    get_vendor_commission_profile,
    recalculate_vendor_rating,
)
from utils.time_utils import parse_date
from .dto import BookingCreateCommand, BookingDetailsDTO, BookingRowDTO, BookingUpdateCommand

logger = logging.getLogger(__name__)


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: int):
        super().__init__(f"Booking id={booking_id} not found")
        self.booking_id = booking_id


# ──────────────────────────── Получение ─────────────────────────────


def get_booking(booking_id: int) -> Booking:
    booking = Booking.get_or_none(Booking.id == booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)
    return booking


def _booking_query():
    return (
        Booking.select(Booking, Vendor, ServiceType, Trip, Profile)
        .join(Vendor)
        .switch(Booking)
        .join(ServiceType)
        .switch(Booking)
        .join(Trip, JOIN.LEFT_OUTER)
        .switch(Booking)
        .join(Profile, JOIN.LEFT_OUTER)
        .order_by(Booking.start_date.desc(), Booking.id.desc())
    )


def _clients_by_booking(booking_ids: list[int]) -> dict[int, list[Client]]:
    clients: dict[int, list[Client]] = {i: [] for i in booking_ids}
    if not booking_ids:
        return clients
    links = (
        BookingClient.select(BookingClient.booking, Client)
        .join(Client)
        .where(BookingClient.booking.in_(booking_ids))
        .order_by(BookingClient.id)
    )
    for link in links:
        clients[link.booking_id].append(link.client)
    return clients


def _row_from_model(booking: Booking, clients: list[Client], cls=BookingRowDTO, **extra):
    trip = booking.trip if booking.trip_id else None
    agent = booking.agent if booking.agent_id else None
    return cls(
        id=booking.id,
        vendor_id=booking.vendor_id,
        vendor_name=booking.vendor.name,
        service_type_id=booking.service_type_id,
        service_type_name=booking.service_type.name,
        start_date=booking.start_date,
        end_date=booking.end_date,
        cost=booking.cost,
        commission_rate=booking.commission_rate,
        commission_amount=booking.commission_amount,
        booking_status=booking.booking_status,
        commission_status=booking.commission_status,
        client_ids=[c.id for c in clients],
        client_names=[c.full_name for c in clients],
        trip_id=booking.trip_id,
        trip_name=trip.name if trip else "",
        agent_id=booking.agent_id,
        agent_name=agent.full_name if agent else "",
        location=booking.location,
        location_tag_id=booking.location_tag_id,
        is_completed=booking.is_completed,
        rating=booking.rating,
        **extra,
    )


def list_booking_rows(
    filters: BookingFilters | None = None,
    *,
    trip_id: int | None = None,
    agent_id: int | None = None,
) -> list[BookingRowDTO]:
    """Строки бронирований; выборка из БД, фильтрация в памяти."""
    query = _booking_query()
    if trip_id is not None:
        query = query.where(Booking.trip == trip_id)
    if agent_id is not None:
        query = query.where(Booking.agent == agent_id)
    bookings = list(query)
    clients = _clients_by_booking([b.id for b in bookings])
    rows = [_row_from_model(b, clients[b.id]) for b in bookings]
    return filter_bookings(rows, filters)


def get_booking_detail_dto(booking_id: int) -> BookingDetailsDTO:
    booking = _booking_query().where(Booking.id == booking_id).first()
    if booking is None:
        raise BookingNotFoundError(booking_id)
    clients = _clients_by_booking([booking.id])[booking.id]
    location = booking.location_tag if booking.location_tag_id else None
    return _row_from_model(
        booking,
        clients,
        BookingDetailsDTO,
        notes=booking.notes,
        location_label=location.label if location else None,
    )


# ──────────────────────────── Изменение ─────────────────────────────


def _related(model, field: str, record_id):
    if record_id in (None, ""):
        return None
    record = model.get_or_none(model.id == int(record_id))
    if record is None:
        raise FieldValidationError(field, f"{field}: record {record_id} not found")
    return record


def _status(enum_cls, field: str, value) -> str:
    try:
        return enum_cls(getattr(value, "value", value)).value
    except ValueError:
        allowed = ", ".join(s.value for s in enum_cls)
        raise FieldValidationError(field, f"{field} must be one of: {allowed}") from None


def _parse_day(field: str, value):
    try:
        return parse_date(value)
    except ValueError:
        raise FieldValidationError(field, f"{field} must be a date (YYYY-MM-DD)") from None


def _clean_booking_data(kwargs: dict, *, partial: bool) -> dict:
    clean: dict = {}
    for field, model in (("vendor_id", Vendor), ("service_type_id", ServiceType)):
        if field in kwargs or not partial:
            record = _related(model, field, kwargs.get(field))
            if record is None:
                raise FieldValidationError(field, f"{field} is required")
            clean[field[:-3]] = record
    for field, model in (
        ("trip_id", Trip),
        ("agent_id", Profile),
        ("location_tag_id", LocationTag),
    ):
        if field in kwargs:
            clean[field[:-3]] = _related(model, field, kwargs[field])
    if "start_date" in kwargs or not partial:
        start = _parse_day("start_date", kwargs.get("start_date"))
        if start is None:
            raise FieldValidationError("start_date", "start_date is required")
        clean["start_date"] = start
    if "end_date" in kwargs:
        clean["end_date"] = _parse_day("end_date", kwargs["end_date"])
    if "cost" in kwargs:
        clean["cost"] = parse_decimal("cost", kwargs["cost"], minimum=0, places=MONEY_PLACES)
    if kwargs.get("commission_rate") not in (None, ""):
        clean["commission_rate"] = parse_decimal(
            "commission_rate",
            kwargs["commission_rate"],
            minimum=0,
            maximum=100,
            places=RATE_PLACES,
        )
    if "booking_status" in kwargs:
        clean["booking_status"] = _status(BookingStatus, "booking_status", kwargs["booking_status"])
    if "commission_status" in kwargs:
        clean["commission_status"] = _status(
            CommissionStatus, "commission_status", kwargs["commission_status"]
        )
    if "location" in kwargs:
        clean["location"] = optional_text(kwargs["location"]) or ""
    if "notes" in kwargs:
        clean["notes"] = optional_text(kwargs["notes"])
    if "is_completed" in kwargs:
        clean["is_completed"] = bool(kwargs["is_completed"])
    return clean


def _check_dates(booking: Booking) -> None:
    if booking.end_date and booking.start_date and booking.end_date < booking.start_date:
        raise FieldValidationError("end_date", "end_date cannot be before start_date")


def _set_booking_clients(booking: Booking, client_ids: Iterable[int]) -> None:
    clients = get_clients_by_ids(client_ids)
    BookingClient.delete().where(BookingClient.booking == booking).execute()
    for client in clients:
        BookingClient.create(booking=booking, client=client)


def add_booking(
    session: UserSession | None = None,
    *,
    client_ids: Iterable[int] = (),
    **kwargs,
) -> Booking:
    """Создать бронирование.

    По умолчанию Pending / Unreceived. Без явной ставки берётся ставка
    поставщика; без явного агента агентом становится текущий пользователь.
    """
    clean_data = _clean_booking_data(kwargs, partial=False)
    clean_data.setdefault("commission_rate", clean_data["vendor"].commission_rate)
    if "agent" not in clean_data and session is not None:
        clean_data["agent"] = session.profile_id
    booking = Booking(**clean_data)
    _check_dates(booking)
    with db.atomic():
        booking.save()
        _set_booking_clients(booking, client_ids)
    logger.info(
        "✅ Booking id=%s created: vendor=%s cost=%s commission=%s",
        booking.id,
        booking.vendor_id,
        booking.cost,
        booking.commission_amount,
    )
    add_audit_log(
        session,
        "create",
        "booking",
        booking.id,
        {"vendor_id": booking.vendor_id, "cost": booking.cost},
    )
    return booking


def update_booking(
    booking: Booking,
    session: UserSession | None = None,
    *,
    client_ids: Iterable[int] | None = None,
    **kwargs,
) -> Booking:
    """Изменить бронирование; сумма комиссии пересчитывается при сохранении."""
    clean_data = _clean_booking_data(kwargs, partial=True)
    vendor = clean_data.get("vendor")
    if vendor is not None and vendor.id != booking.vendor_id:
        # новый поставщик приносит свою ставку, если она не задана явно
        clean_data.setdefault("commission_rate", vendor.commission_rate)
    for key, value in clean_data.items():
        setattr(booking, key, value)
    _check_dates(booking)
    with db.atomic():
        if clean_data:
            booking.save()
        if client_ids is not None:
            _set_booking_clients(booking, client_ids)
    logger.info("✏️ Booking id=%s updated: %s", booking.id, sorted(clean_data))
    add_audit_log(session, "update", "booking", booking.id, {"fields": sorted(clean_data)})
    return booking


def delete_booking(booking_id: int, session: UserSession | None = None) -> None:
    booking = get_booking(booking_id)
    vendor_id = booking.vendor_id
    rated = booking.rating is not None
    with db.atomic():
        booking.delete_instance()
    logger.info("🗑 Booking id=%s deleted", booking_id)
    add_audit_log(session, "delete", "booking", booking_id)
    if rated:
        recalculate_vendor_rating(vendor_id)


def set_booking_status(
    booking_id: int, status, session: UserSession | None = None
) -> Booking:
    booking = get_booking(booking_id)
    new_status = _status(BookingStatus, "booking_status", status)
    old_status = booking.booking_status
    booking.booking_status = new_status
    with db.atomic():
        booking.save(only=[Booking.booking_status])
    logger.info("🔁 Booking id=%s status: %s → %s", booking.id, old_status, new_status)
    add_audit_log(
        session, "status_change", "booking", booking.id, {"from": old_status, "to": new_status}
    )
    if booking.rating is not None:
        recalculate_vendor_rating(booking.vendor_id)
    return booking


def set_commission_status(
    booking_id: int, status, session: UserSession | None = None
) -> Booking:
    """Сменить статус комиссии (только администраторы)."""
    require_role(session, UserRole.ADMIN)
    booking = get_booking(booking_id)
    new_status = _status(CommissionStatus, "commission_status", status)
    old_status = booking.commission_status
    booking.commission_status = new_status
    with db.atomic():
        booking.save(only=[Booking.commission_status])
    logger.info("🔁 Booking id=%s commission: %s → %s", booking.id, old_status, new_status)
    add_audit_log(
        session,
        "commission_status_change",
        "booking",
        booking.id,
        {"from": old_status, "to": new_status},
    )
    return booking


def update_booking_rating(
    booking_id: int,
    rating: int | None,
    session: UserSession | None = None,
    *,
    is_completed: bool | None = None,
) -> Booking:
    """Оценка бронирования 1-5 (или сброс) с пересчётом рейтинга поставщика."""
    booking = get_booking(booking_id)
    if rating is not None:
        if isinstance(rating, bool) or not str(rating).strip().isdigit() or not 1 <= int(rating) <= 5:
            raise FieldValidationError("rating", "rating must be a number between 1 and 5")
        rating = int(rating)
    booking.rating = rating
    fields = [Booking.rating]
    if is_completed is not None:
        booking.is_completed = bool(is_completed)
        fields.append(Booking.is_completed)
    with db.atomic():
        booking.save(only=fields)
    add_audit_log(session, "rate", "booking", booking.id, {"rating": rating})
    recalculate_vendor_rating(booking.vendor_id)
    return booking


def create_booking_from_command(
    command: BookingCreateCommand, session: UserSession | None = None
) -> BookingDetailsDTO:
    booking = add_booking(session, **command.to_payload())
    return get_booking_detail_dto(booking.id)


def update_booking_from_command(
    command: BookingUpdateCommand, session: UserSession | None = None
) -> BookingDetailsDTO:
    booking = get_booking(command.id)
    update_booking(booking, session, **command.to_payload())
    return get_booking_detail_dto(booking.id)


# ──────────────────────────── Форма ─────────────────────────────


def service_type_options() -> list[ServiceTypeOption]:
    return [
        ServiceTypeOption(id=st.id, name=st.name)
        for st in ServiceType.select().order_by(ServiceType.name)
    ]


def build_booking_form(
    *,
    vendor_id: int | None = None,
    cost=Decimal("0"),
    commission_rate=None,
    service_type_id: int | None = None,
    loader=get_vendor_commission_profile,
) -> BookingCommissionForm:
    """Состояние формы бронирования с каскадом поставщик → ставка."""
    form = BookingCommissionForm(
        all_service_types=service_type_options(),
        loader=loader,
        cost=parse_decimal("cost", cost, minimum=0, required=False, places=MONEY_PLACES) or 0,
        service_type_id=service_type_id,
    )
    if commission_rate not in (None, ""):
        form.set_rate(
            parse_decimal(
                "commission_rate", commission_rate, minimum=0, maximum=100, places=RATE_PLACES
            )
        )
    if vendor_id is not None:
        form.on_vendor_selected(vendor_id)
    return form


# ──────────────────────────── Комиссии ─────────────────────────────


def list_commission_rows(
    session: UserSession | None,
    filters: CommissionFilters | None = None,
    *,
    agent_id: int | None = None,
) -> list[BookingRowDTO]:
    """Бронирования для экрана комиссий (только администраторы)."""
    require_role(session, UserRole.ADMIN)
    return apply_filters(list_booking_rows(agent_id=agent_id), filters)


def get_commission_summary(
    session: UserSession | None,
    filters: CommissionFilters | None = None,
    *,
    agent_id: int | None = None,
) -> CommissionSummary:
    return summarize_commissions(list_commission_rows(session, filters, agent_id=agent_id))


@dataclass
class AgentCommissionShare:
    agent_id: int
    agent_name: str
    commission_total: Decimal
    agent_percentage: Decimal | None
    agent_share: Decimal


def list_agent_commission_shares(
    session: UserSession | None, filters: CommissionFilters | None = None
) -> list[AgentCommissionShare]:
    """Комиссия по агентам и их доля; отменённые бронирования не учитываются."""
    totals: dict[int, Decimal] = {}
    for row in list_commission_rows(session, filters):
        if row.agent_id is None or row.booking_status == BookingStatus.CANCELED.value:
            continue
        totals[row.agent_id] = totals.get(row.agent_id, Decimal("0")) + row.commission_amount
    if not totals:
        return []
    agents = {p.id: p for p in Profile.select().where(Profile.id.in_(list(totals)))}
    shares = [
        AgentCommissionShare(
            agent_id=agent_id,
            agent_name=agents[agent_id].full_name,
            commission_total=total,
            agent_percentage=agents[agent_id].agent_commission_percentage,
            agent_share=agent_commission_share(
                total, agents[agent_id].agent_commission_percentage
            ),
        )
        for agent_id, total in totals.items()
    ]
    shares.sort(key=lambda s: s.commission_total, reverse=True)
    return shares
