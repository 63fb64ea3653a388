"""Сервисные функции для работы с поставщиками."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal, ROUND_HALF_UP

from peewee import JOIN, fn

from config import get_settings
from database.db import db
from database.models import (
    RATE_PLACES,
    Booking,
    BookingStatus,
    LocationTag,
    ServiceType,
    Tag,
    Vendor,
    VendorServiceType,
    VendorTag,
)
from services.access import UserSession
from services.audit_log_service import add_audit_log
from services.clients.client_service import client_names_for_bookings
from services.commission import VendorCommissionProfile
from services.filters import VendorFilters, filter_vendors
from services.reference_service import get_location_tag, get_service_type, get_tag
from services.validators import (
    NotFoundError,
    normalize_email,
    optional_text,
    parse_decimal,
    parse_int_in_range,
    require_text,
)
from .dto import (
    VendorBookingInfo,
    VendorCreateCommand,
    VendorDetailsDTO,
    VendorRowDTO,
    VendorUpdateCommand,
)

logger = logging.getLogger(__name__)

VENDOR_TEXT_FIELDS = ("contact_person", "phone", "address", "service_area")


class VendorNotFoundError(NotFoundError):
    def __init__(self, vendor_id: int):
        super().__init__(f"Vendor id={vendor_id} not found")
        self.vendor_id = vendor_id


# ──────────────────────────── Получение ─────────────────────────────


def get_vendor(vendor_id: int) -> Vendor:
    vendor = Vendor.get_or_none(Vendor.id == vendor_id)
    if vendor is None:
        raise VendorNotFoundError(vendor_id)
    return vendor


def _links_by_vendor(vendor_ids: list[int]) -> tuple[dict, dict]:
    service_types: dict[int, list[ServiceType]] = {i: [] for i in vendor_ids}
    tags: dict[int, list[Tag]] = {i: [] for i in vendor_ids}
    if not vendor_ids:
        return service_types, tags
    st_links = (
        VendorServiceType.select(VendorServiceType.vendor, ServiceType)
        .join(ServiceType)
        .where(VendorServiceType.vendor.in_(vendor_ids))
        .order_by(ServiceType.name)
    )
    for link in st_links:
        service_types[link.vendor_id].append(link.service_type)
    tag_links = (
        VendorTag.select(VendorTag.vendor, Tag)
        .join(Tag)
        .where(VendorTag.vendor.in_(vendor_ids))
        .order_by(Tag.name)
    )
    for link in tag_links:
        tags[link.vendor_id].append(link.tag)
    return service_types, tags


def _row_from_model(vendor: Vendor, service_types: list, tags: list, cls=VendorRowDTO):
    location = vendor.location_tag if vendor.location_tag_id else None
    return cls(
        id=vendor.id,
        name=vendor.name,
        contact_person=vendor.contact_person,
        email=vendor.email,
        phone=vendor.phone,
        address=vendor.address,
        service_area=vendor.service_area,
        commission_rate=vendor.commission_rate,
        price_range=vendor.price_range,
        rating=vendor.rating,
        notes=vendor.notes,
        location_tag_id=vendor.location_tag_id,
        location_label=location.label if location else None,
        service_type_ids=[st.id for st in service_types],
        service_type_names=[st.name for st in service_types],
        tag_ids=[t.id for t in tags],
        tag_names=[t.name for t in tags],
    )


def list_vendor_rows(filters: VendorFilters | None = None) -> list[VendorRowDTO]:
    """Все поставщики с типами услуг и тегами, отфильтрованные в памяти."""
    vendors = list(
        Vendor.select(Vendor, LocationTag)
        .join(LocationTag, JOIN.LEFT_OUTER)
        .order_by(fn.LOWER(Vendor.name))
    )
    service_types, tags = _links_by_vendor([v.id for v in vendors])
    rows = [_row_from_model(v, service_types[v.id], tags[v.id]) for v in vendors]
    return filter_vendors(rows, filters)


def get_vendor_booking_history(vendor_id: int) -> list[VendorBookingInfo]:
    bookings = list(
        Booking.select(Booking, ServiceType)
        .join(ServiceType)
        .where(Booking.vendor == vendor_id)
        .order_by(Booking.start_date.desc())
    )
    names = client_names_for_bookings([b.id for b in bookings])
    return [
        VendorBookingInfo(
            id=b.id,
            client_names=names[b.id],
            service_type_name=b.service_type.name,
            start_date=b.start_date,
            cost=b.cost,
            commission_amount=b.commission_amount,
            booking_status=b.booking_status,
            rating=b.rating,
        )
        for b in bookings
    ]


def get_vendor_detail_dto(vendor_id: int) -> VendorDetailsDTO:
    vendor = get_vendor(vendor_id)
    service_types, tags = _links_by_vendor([vendor.id])
    detail = _row_from_model(vendor, service_types[vendor.id], tags[vendor.id], VendorDetailsDTO)
    detail.bookings = get_vendor_booking_history(vendor.id)
    return detail


def get_vendor_commission_profile(vendor_id: int) -> VendorCommissionProfile:
    """Ставка комиссии и типы услуг поставщика для формы бронирования.

    Единственный источник ставки: плоская ``commission_rate`` поставщика.
    """
    vendor = get_vendor(vendor_id)
    service_type_ids = frozenset(
        link.service_type_id
        for link in VendorServiceType.select(VendorServiceType.service_type).where(
            VendorServiceType.vendor == vendor
        )
    )
    return VendorCommissionProfile(
        vendor_id=vendor.id,
        commission_rate=vendor.commission_rate,
        service_type_ids=service_type_ids,
    )


# ──────────────────────────── Изменение ─────────────────────────────


def clean_vendor_data(kwargs: dict, *, partial: bool) -> dict:
    clean: dict = {}
    if "name" in kwargs or not partial:
        clean["name"] = require_text("name", kwargs.get("name"))
    for key in VENDOR_TEXT_FIELDS:
        if key in kwargs:
            clean[key] = optional_text(kwargs[key]) or ""
    if "email" in kwargs:
        clean["email"] = normalize_email(kwargs["email"]) or ""
    if "commission_rate" in kwargs:
        clean["commission_rate"] = parse_decimal(
            "commission_rate",
            kwargs["commission_rate"],
            minimum=0,
            maximum=100,
            places=RATE_PLACES,
        )
    elif not partial:
        clean["commission_rate"] = get_settings().default_commission_rate
    if "price_range" in kwargs:
        clean["price_range"] = parse_int_in_range("price_range", kwargs["price_range"], 1, 5)
    if "notes" in kwargs:
        clean["notes"] = optional_text(kwargs["notes"])
    if "location_tag_id" in kwargs:
        tag_id = kwargs["location_tag_id"]
        clean["location_tag"] = get_location_tag(tag_id) if tag_id else None
    return clean


def set_vendor_service_types(vendor: Vendor, service_type_ids: Iterable[int]) -> None:
    VendorServiceType.delete().where(VendorServiceType.vendor == vendor).execute()
    for st_id in dict.fromkeys(service_type_ids):
        VendorServiceType.create(vendor=vendor, service_type=get_service_type(st_id))


def set_vendor_tags(vendor: Vendor, tag_ids: Iterable[int]) -> None:
    VendorTag.delete().where(VendorTag.vendor == vendor).execute()
    for tag_id in dict.fromkeys(tag_ids):
        VendorTag.create(vendor=vendor, tag=get_tag(tag_id))


def add_vendor(
    session: UserSession | None = None,
    *,
    service_type_ids: Iterable[int] = (),
    tag_ids: Iterable[int] = (),
    **kwargs,
) -> Vendor:
    """Создать поставщика вместе со связями."""
    clean_data = clean_vendor_data(kwargs, partial=False)
    with db.atomic():
        vendor = Vendor.create(**clean_data)
        set_vendor_service_types(vendor, service_type_ids)
        set_vendor_tags(vendor, tag_ids)
    logger.info("✅ Vendor id=%s: %s created", vendor.id, vendor.name)
    add_audit_log(session, "create", "vendor", vendor.id, {"name": vendor.name})
    return vendor


def update_vendor(
    vendor: Vendor,
    session: UserSession | None = None,
    *,
    service_type_ids: Iterable[int] | None = None,
    tag_ids: Iterable[int] | None = None,
    **kwargs,
) -> Vendor:
    clean_data = clean_vendor_data(kwargs, partial=True)
    with db.atomic():
        for key, value in clean_data.items():
            setattr(vendor, key, value)
        if clean_data:
            vendor.save()
        if service_type_ids is not None:
            set_vendor_service_types(vendor, service_type_ids)
        if tag_ids is not None:
            set_vendor_tags(vendor, tag_ids)
    logger.info("✏️ Vendor id=%s updated", vendor.id)
    add_audit_log(session, "update", "vendor", vendor.id, {"fields": sorted(clean_data)})
    return vendor


def delete_vendor(vendor_id: int, session: UserSession | None = None) -> None:
    """Удалить поставщика; поставщик с бронированиями не удаляется (IntegrityError)."""
    vendor = get_vendor(vendor_id)
    with db.atomic():
        vendor.delete_instance()
    logger.info("🗑 Vendor id=%s deleted", vendor_id)
    add_audit_log(session, "delete", "vendor", vendor_id, {"name": vendor.name})


def create_vendor_from_command(
    command: VendorCreateCommand, session: UserSession | None = None
) -> VendorDetailsDTO:
    vendor = add_vendor(session, **command.to_payload())
    return get_vendor_detail_dto(vendor.id)


def update_vendor_from_command(
    command: VendorUpdateCommand, session: UserSession | None = None
) -> VendorDetailsDTO:
    vendor = get_vendor(command.id)
    update_vendor(vendor, session, **command.to_payload())
    return get_vendor_detail_dto(vendor.id)


# ──────────────────────────── Рейтинг ─────────────────────────────


def recalculate_vendor_rating(vendor_id: int) -> Decimal:
    """Средняя оценка по подтверждённым и завершённым бронированиям.

    Округляется до двух знаков; ``0``, если оценок нет.
    """
    vendor = get_vendor(vendor_id)
    ratings = [
        b.rating
        for b in Booking.select(Booking.rating).where(
            (Booking.vendor == vendor)
            & (Booking.booking_status == BookingStatus.CONFIRMED.value)
            & (Booking.is_completed == True)  # noqa: E712
            & (Booking.rating.is_null(False))
        )
    ]
    average = Decimal("0")
    if ratings:
        average = (Decimal(sum(ratings)) / len(ratings)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    vendor.rating = average
    vendor.save(only=[Vendor.rating])
    logger.info("⭐ Vendor id=%s rating recalculated: %s (%d bookings)", vendor.id, average, len(ratings))
    return average
