"""Справочники: типы услуг, теги, географические метки."""

from fastapi import APIRouter, Depends

from database.models import UserRole
from services.access import UserSession
from services.filters import LocationTagFilters, NameFilters
from services.reference_service import (
    LocationTagDTO,
    create_location_tag,
    create_service_type,
    create_tag,
    delete_location_tag,
    delete_service_type,
    delete_tag,
    get_location_hierarchy,
    list_location_tags,
    list_service_types,
    list_tags,
    rename_tag,
    update_location_tag,
    update_service_type,
)
from ..deps import get_current_session, require_role
from ..schemas import (
    LocationNodeRead,
    LocationTagIn,
    LocationTagRead,
    ServiceTypeIn,
    ServiceTypeRead,
    TagIn,
    TagRead,
)

service_types_router = APIRouter(prefix="/service-types", tags=["reference"])
tags_router = APIRouter(prefix="/tags", tags=["reference"])
location_tags_router = APIRouter(prefix="/location-tags", tags=["reference"])

admin_only = require_role(UserRole.ADMIN)


def _service_type_read(service_type_id: int) -> ServiceTypeRead:
    rows = [r for r in list_service_types() if r.id == service_type_id]
    return ServiceTypeRead.model_validate(rows[0])


# ───────────── service types ─────────────


@service_types_router.get("/", response_model=list[ServiceTypeRead])
def read_service_types(search: str = "", session: UserSession = Depends(get_current_session)):
    return list_service_types(NameFilters(search_term=search))


@service_types_router.post("/", response_model=ServiceTypeRead, status_code=201)
def add_service_type(data: ServiceTypeIn, session: UserSession = Depends(admin_only)):
    service_type = create_service_type(session, data.name, data.tag_ids or ())
    return _service_type_read(service_type.id)


@service_types_router.put("/{service_type_id}", response_model=ServiceTypeRead)
def edit_service_type(
    service_type_id: int, data: ServiceTypeIn, session: UserSession = Depends(admin_only)
):
    update_service_type(session, service_type_id, data.name, data.tag_ids)
    return _service_type_read(service_type_id)


@service_types_router.delete("/{service_type_id}")
def remove_service_type(service_type_id: int, session: UserSession = Depends(admin_only)):
    delete_service_type(session, service_type_id)
    return {"status": "deleted"}


# ───────────── tags ─────────────


@tags_router.get("/", response_model=list[TagRead])
def read_tags(search: str = "", session: UserSession = Depends(get_current_session)):
    return list_tags(NameFilters(search_term=search))


@tags_router.post("/", response_model=TagRead, status_code=201)
def add_tag(data: TagIn, session: UserSession = Depends(admin_only)):
    tag = create_tag(session, data.name)
    return TagRead(id=tag.id, name=tag.name)


@tags_router.put("/{tag_id}", response_model=TagRead)
def edit_tag(tag_id: int, data: TagIn, session: UserSession = Depends(admin_only)):
    tag = rename_tag(session, tag_id, data.name)
    return next(t for t in list_tags() if t.id == tag.id)


@tags_router.delete("/{tag_id}")
def remove_tag(tag_id: int, session: UserSession = Depends(admin_only)):
    delete_tag(session, tag_id)
    return {"status": "deleted"}


# ───────────── location tags ─────────────


@location_tags_router.get("/", response_model=list[LocationTagRead])
def read_location_tags(search: str = "", session: UserSession = Depends(get_current_session)):
    return list_location_tags(LocationTagFilters(search_term=search))


@location_tags_router.get("/hierarchy", response_model=list[LocationNodeRead])
def read_location_hierarchy(session: UserSession = Depends(get_current_session)):
    return get_location_hierarchy()


@location_tags_router.post("/", response_model=LocationTagRead, status_code=201)
def add_location_tag(data: LocationTagIn, session: UserSession = Depends(admin_only)):
    tag = create_location_tag(session, **data.model_dump())
    return LocationTagDTO.from_model(tag)


@location_tags_router.put("/{location_tag_id}", response_model=LocationTagRead)
def edit_location_tag(
    location_tag_id: int, data: LocationTagIn, session: UserSession = Depends(admin_only)
):
    tag = update_location_tag(session, location_tag_id, **data.model_dump())
    return LocationTagDTO.from_model(tag)


@location_tags_router.delete("/{location_tag_id}")
def remove_location_tag(location_tag_id: int, session: UserSession = Depends(admin_only)):
    delete_location_tag(session, location_tag_id)
    return {"status": "deleted"}
