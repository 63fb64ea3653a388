from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from database.models import UserRole
from services.access import UserSession
from services.export_service import render_export
from services.filters import NumericRange, VendorFilters
from services.vendors import (
    VendorCreateCommand,
    VendorUpdateCommand,
    create_vendor_from_command,
    delete_vendor,
    get_vendor_detail_dto,
    list_vendor_rows,
    update_vendor_from_command,
)
from ..deps import get_current_session, require_role
from ..schemas import VendorCreate, VendorDetailRead, VendorRead, VendorUpdate

router = APIRouter(prefix="/vendors", tags=["vendors"])


def vendor_filters(
    search: str = "",
    service_types: list[str] = Query(default=[]),
    tags: list[str] = Query(default=[]),
    price_min: Decimal | None = None,
    price_max: Decimal | None = None,
    commission_min: Decimal | None = None,
    commission_max: Decimal | None = None,
    rating_min: Decimal | None = None,
) -> VendorFilters:
    return VendorFilters(
        search_term=search,
        service_types=service_types,
        tags=tags,
        price_range=NumericRange(price_min, price_max),
        commission_range=NumericRange(commission_min, commission_max),
        rating_minimum=rating_min,
    )


@router.get("/", response_model=list[VendorRead])
def read_vendors(
    filters: VendorFilters = Depends(vendor_filters),
    session: UserSession = Depends(get_current_session),
):
    return list_vendor_rows(filters)


@router.get("/export")
def export_vendors(
    fmt: str = Query("csv", pattern="^(csv|xlsx)$"),
    filters: VendorFilters = Depends(vendor_filters),
    session: UserSession = Depends(get_current_session),
):
    name, content, media_type = render_export("vendors", list_vendor_rows(filters), fmt)
    return Response(
        content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


@router.post("/", response_model=VendorDetailRead, status_code=201)
def add_vendor(
    vendor_in: VendorCreate,
    session: UserSession = Depends(require_role(UserRole.ADMIN)),
):
    data = vendor_in.model_dump(exclude_none=True)
    data["service_type_ids"] = tuple(data.get("service_type_ids", ()))
    data["tag_ids"] = tuple(data.get("tag_ids", ()))
    return create_vendor_from_command(VendorCreateCommand(**data), session)


@router.get("/{vendor_id}", response_model=VendorDetailRead)
def read_vendor(vendor_id: int, session: UserSession = Depends(get_current_session)):
    return get_vendor_detail_dto(vendor_id)


@router.put("/{vendor_id}", response_model=VendorDetailRead)
def edit_vendor(
    vendor_id: int,
    vendor_in: VendorUpdate,
    session: UserSession = Depends(require_role(UserRole.ADMIN)),
):
    data = vendor_in.model_dump(exclude_none=True)
    for key in ("service_type_ids", "tag_ids"):
        if key in data:
            data[key] = tuple(data[key])
    return update_vendor_from_command(VendorUpdateCommand(id=vendor_id, **data), session)


@router.delete("/{vendor_id}")
def remove_vendor(
    vendor_id: int,
    session: UserSession = Depends(require_role(UserRole.ADMIN)),
):
    delete_vendor(vendor_id, session)
    return {"status": "deleted"}
