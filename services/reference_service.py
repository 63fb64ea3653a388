"""Справочники: типы услуг, теги и географические метки."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from peewee import JOIN, fn

from database.db import db
from database.models import (
    LocationTag,
    ServiceType,
    ServiceTypeTag,
    Tag,
    UserRole,
    VendorServiceType,
    VendorTag,
)
from services.access import UserSession, require_role
from services.audit_log_service import add_audit_log
from services.filters import LocationTagFilters, NameFilters, apply_filters
from services.validators import NotFoundError, optional_text, require_text

logger = logging.getLogger(__name__)

NO_STATE_LABEL = "No State/Province"


class ReferenceNotFoundError(NotFoundError):
    def __init__(self, resource: str, record_id: int):
        super().__init__(f"{resource} id={record_id} not found")
        self.resource = resource
        self.record_id = record_id


@dataclass
class ServiceTypeDTO:
    id: int
    name: str
    tag_names: list[str] = field(default_factory=list)
    vendor_count: int = 0


@dataclass
class TagDTO:
    id: int
    name: str
    usage_count: int = 0


@dataclass
class LocationTagDTO:
    id: int
    continent: str
    country: str
    state_province: str | None = None
    city: str | None = None

    @property
    def label(self) -> str:
        return location_label(self)

    @classmethod
    def from_model(cls, tag: LocationTag) -> "LocationTagDTO":
        return cls(
            id=tag.id,
            continent=tag.continent,
            country=tag.country,
            state_province=tag.state_province,
            city=tag.city,
        )


def location_label(tag) -> str:
    """``"Europe > France > Île-de-France > Paris"``; пустые уровни пропускаются."""
    parts = [tag.continent, tag.country, tag.state_province, tag.city]
    return " > ".join(p for p in parts if p)


# ───────────────────────────── типы услуг ─────────────────────────────


def get_service_type(service_type_id: int) -> ServiceType:
    service_type = ServiceType.get_or_none(ServiceType.id == service_type_id)
    if service_type is None:
        raise ReferenceNotFoundError("Service type", service_type_id)
    return service_type


def list_service_types(filters: NameFilters | None = None) -> list[ServiceTypeDTO]:
    tag_names: dict[int, list[str]] = {}
    links = (
        ServiceTypeTag.select(ServiceTypeTag.service_type, Tag.name)
        .join(Tag)
        .order_by(Tag.name)
    )
    for link in links:
        tag_names.setdefault(link.service_type_id, []).append(link.tag.name)
    vendor_counts = service_type_vendor_counts()
    rows = [
        ServiceTypeDTO(
            id=st.id,
            name=st.name,
            tag_names=tag_names.get(st.id, []),
            vendor_count=vendor_counts.get(st.id, 0),
        )
        for st in ServiceType.select().order_by(ServiceType.name)
    ]
    return apply_filters(rows, filters)


def _set_service_type_tags(service_type: ServiceType, tag_ids: Iterable[int]) -> None:
    ServiceTypeTag.delete().where(ServiceTypeTag.service_type == service_type).execute()
    for tag_id in dict.fromkeys(tag_ids):
        ServiceTypeTag.create(service_type=service_type, tag=get_tag(tag_id))


def create_service_type(
    session: UserSession | None, name: str, tag_ids: Iterable[int] = ()
) -> ServiceType:
    require_role(session, UserRole.ADMIN)
    name = require_text("name", name)
    with db.atomic():
        service_type = ServiceType.create(name=name)
        _set_service_type_tags(service_type, tag_ids)
    logger.info("✅ Service type id=%s: %s created", service_type.id, name)
    add_audit_log(session, "create", "service_type", service_type.id, {"name": name})
    return service_type


def update_service_type(
    session: UserSession | None,
    service_type_id: int,
    name: str | None = None,
    tag_ids: Iterable[int] | None = None,
) -> ServiceType:
    require_role(session, UserRole.ADMIN)
    service_type = get_service_type(service_type_id)
    with db.atomic():
        if name is not None:
            service_type.name = require_text("name", name)
            service_type.save()
        if tag_ids is not None:
            _set_service_type_tags(service_type, tag_ids)
    add_audit_log(session, "update", "service_type", service_type.id, {"name": service_type.name})
    return service_type


def delete_service_type(session: UserSession | None, service_type_id: int) -> None:
    require_role(session, UserRole.ADMIN)
    service_type = get_service_type(service_type_id)
    with db.atomic():
        service_type.delete_instance()
    logger.info("🗑 Service type id=%s deleted", service_type_id)
    add_audit_log(session, "delete", "service_type", service_type_id, {"name": service_type.name})


# ───────────────────────────── теги ─────────────────────────────


def get_tag(tag_id: int) -> Tag:
    tag = Tag.get_or_none(Tag.id == tag_id)
    if tag is None:
        raise ReferenceNotFoundError("Tag", tag_id)
    return tag


def list_tags(filters: NameFilters | None = None) -> list[TagDTO]:
    """Теги, отсортированные по частоте использования."""
    vendor_usage = (
        VendorTag.select(VendorTag.tag, fn.COUNT(VendorTag.id).alias("cnt"))
        .group_by(VendorTag.tag)
    )
    type_usage = (
        ServiceTypeTag.select(ServiceTypeTag.tag, fn.COUNT(ServiceTypeTag.id).alias("cnt"))
        .group_by(ServiceTypeTag.tag)
    )
    usage: dict[int, int] = {}
    for row in list(vendor_usage.dicts()) + list(type_usage.dicts()):
        usage[row["tag"]] = usage.get(row["tag"], 0) + row["cnt"]

    rows = [
        TagDTO(id=t.id, name=t.name, usage_count=usage.get(t.id, 0))
        for t in Tag.select().order_by(Tag.name)
    ]
    rows.sort(key=lambda r: -r.usage_count)
    return apply_filters(rows, filters)


def create_tag(session: UserSession | None, name: str) -> Tag:
    require_role(session, UserRole.ADMIN)
    name = require_text("name", name)
    with db.atomic():
        tag = Tag.create(name=name)
    logger.info("✅ Tag id=%s: %s created", tag.id, name)
    add_audit_log(session, "create", "tag", tag.id, {"name": name})
    return tag


def rename_tag(session: UserSession | None, tag_id: int, name: str) -> Tag:
    require_role(session, UserRole.ADMIN)
    tag = get_tag(tag_id)
    tag.name = require_text("name", name)
    with db.atomic():
        tag.save()
    add_audit_log(session, "update", "tag", tag.id, {"name": tag.name})
    return tag


def delete_tag(session: UserSession | None, tag_id: int) -> None:
    require_role(session, UserRole.ADMIN)
    tag = get_tag(tag_id)
    with db.atomic():
        tag.delete_instance()
    logger.info("🗑 Tag id=%s deleted", tag_id)
    add_audit_log(session, "delete", "tag", tag_id, {"name": tag.name})


def find_ids_by_names(model, names: Iterable[str]) -> tuple[list[int], list[str]]:
    """Поиск по именам без учёта регистра; возвращает ``(ids, unknown_names)``."""
    by_name = {row.name.lower(): row.id for row in model.select(model.id, model.name)}
    ids: list[int] = []
    unknown: list[str] = []
    for name in names:
        key = name.strip().lower()
        if not key:
            continue
        if key in by_name:
            ids.append(by_name[key])
        else:
            unknown.append(name.strip())
    return ids, unknown


# ───────────────────────── географические метки ─────────────────────────


def get_location_tag(location_tag_id: int) -> LocationTag:
    tag = LocationTag.get_or_none(LocationTag.id == location_tag_id)
    if tag is None:
        raise ReferenceNotFoundError("Location tag", location_tag_id)
    return tag


def list_location_tags(filters: LocationTagFilters | None = None) -> list[LocationTagDTO]:
    query = LocationTag.select().order_by(
        LocationTag.continent,
        LocationTag.country,
        LocationTag.state_province,
        LocationTag.city,
    )
    return apply_filters([LocationTagDTO.from_model(t) for t in query], filters)


def _clean_location(continent, country, state_province, city) -> dict:
    return {
        "continent": require_text("continent", continent),
        "country": require_text("country", country),
        "state_province": optional_text(state_province),
        "city": optional_text(city),
    }


def create_location_tag(
    session: UserSession | None,
    continent: str,
    country: str,
    state_province: str | None = None,
    city: str | None = None,
) -> LocationTag:
    require_role(session, UserRole.ADMIN)
    data = _clean_location(continent, country, state_province, city)
    with db.atomic():
        tag = LocationTag.create(**data)
    logger.info("✅ Location tag id=%s: %s created", tag.id, tag.label)
    add_audit_log(session, "create", "location_tag", tag.id, data)
    return tag


def update_location_tag(
    session: UserSession | None,
    location_tag_id: int,
    continent: str,
    country: str,
    state_province: str | None = None,
    city: str | None = None,
) -> LocationTag:
    require_role(session, UserRole.ADMIN)
    tag = get_location_tag(location_tag_id)
    data = _clean_location(continent, country, state_province, city)
    for key, value in data.items():
        setattr(tag, key, value)
    with db.atomic():
        tag.save()
    add_audit_log(session, "update", "location_tag", tag.id, data)
    return tag


def delete_location_tag(session: UserSession | None, location_tag_id: int) -> None:
    require_role(session, UserRole.ADMIN)
    tag = get_location_tag(location_tag_id)
    with db.atomic():
        tag.delete_instance()
    add_audit_log(session, "delete", "location_tag", location_tag_id, {"label": tag.label})


@dataclass
class LocationHierarchyNode:
    """Континент со структурой ``countries[country][state] -> [cities]``."""

    continent: str
    countries: dict[str, dict[str, list[str]]] = field(default_factory=dict)


def build_location_hierarchy(tags: Iterable) -> list[LocationHierarchyNode]:
    """Группирует метки: континент > страна > регион > город.

    Метки без региона попадают в ``"No State/Province"``; метка без города
    лишь регистрирует свой регион. Порядок входа сохраняется на каждом уровне.
    """
    nodes: dict[str, LocationHierarchyNode] = {}
    for tag in tags:
        node = nodes.setdefault(tag.continent, LocationHierarchyNode(tag.continent))
        states = node.countries.setdefault(tag.country, {})
        cities = states.setdefault(tag.state_province or NO_STATE_LABEL, [])
        if tag.city:
            cities.append(tag.city)
    return list(nodes.values())


def get_location_hierarchy() -> list[LocationHierarchyNode]:
    return build_location_hierarchy(list_location_tags())


def service_type_vendor_counts() -> dict[int, int]:
    """Число поставщиков, предлагающих каждый тип услуг."""
    query = (
        ServiceType.select(ServiceType.id, fn.COUNT(VendorServiceType.id).alias("cnt"))
        .join(VendorServiceType, JOIN.LEFT_OUTER)
        .group_by(ServiceType.id)
    )
    return {row["id"]: row["cnt"] for row in query.dicts()}
