from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from services.access import UserSession
from services.bookings import (
    BookingCreateCommand,
    BookingUpdateCommand,
    build_booking_form,
    create_booking_from_command,
    delete_booking,
    get_booking_detail_dto,
    list_booking_rows,
    set_booking_status,
    set_commission_status,
    update_booking_from_command,
    update_booking_rating,
)
from services.export_service import render_export
from services.filters import BookingFilters, DateRange
from ..deps import get_current_session
from ..schemas import (
    BookingCreate,
    BookingDetailRead,
    BookingFormRead,
    BookingFormVendorIn,
    BookingRead,
    BookingUpdate,
    RatingIn,
    StatusChange,
)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def booking_filters(
    client_search: str = "",
    search: str = "",
    service_types: list[str] = Query(default=[]),
    date_from: date | None = None,
    date_to: date | None = None,
    booking_statuses: list[str] = Query(default=[]),
    commission_statuses: list[str] = Query(default=[]),
) -> BookingFilters:
    return BookingFilters(
        client_search_term=client_search,
        search_term=search,
        service_types=service_types,
        date_range=DateRange(date_from, date_to),
        booking_statuses=booking_statuses,
        commission_statuses=commission_statuses,
    )


@router.get("/", response_model=list[BookingRead])
def read_bookings(
    filters: BookingFilters = Depends(booking_filters),
    trip_id: int | None = None,
    session: UserSession = Depends(get_current_session),
):
    return list_booking_rows(filters, trip_id=trip_id)


@router.get("/export")
def export_bookings(
    fmt: str = Query("csv", pattern="^(csv|xlsx)$"),
    filters: BookingFilters = Depends(booking_filters),
    session: UserSession = Depends(get_current_session),
):
    name, content, media_type = render_export("bookings", list_booking_rows(filters), fmt)
    return Response(
        content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


@router.post("/form/vendor", response_model=BookingFormRead)
def booking_form_vendor_selected(
    form_in: BookingFormVendorIn,
    session: UserSession = Depends(get_current_session),
):
    """Состояние формы после выбора поставщика: ставка и доступные типы услуг."""
    form = build_booking_form(
        cost=form_in.cost,
        commission_rate=form_in.commission_rate,
        service_type_id=form_in.service_type_id,
    )
    form.on_vendor_selected(form_in.vendor_id)
    return form.as_dict()


@router.post("/", response_model=BookingDetailRead, status_code=201)
def add_booking(booking_in: BookingCreate, session: UserSession = Depends(get_current_session)):
    data = booking_in.model_dump(exclude_none=True)
    data["client_ids"] = tuple(data.get("client_ids", ()))
    return create_booking_from_command(BookingCreateCommand(**data), session)


@router.get("/{booking_id}", response_model=BookingDetailRead)
def read_booking(booking_id: int, session: UserSession = Depends(get_current_session)):
    return get_booking_detail_dto(booking_id)


@router.put("/{booking_id}", response_model=BookingDetailRead)
def edit_booking(
    booking_id: int,
    booking_in: BookingUpdate,
    session: UserSession = Depends(get_current_session),
):
    data = booking_in.model_dump(exclude_none=True)
    if "client_ids" in data:
        data["client_ids"] = tuple(data["client_ids"])
    return update_booking_from_command(BookingUpdateCommand(id=booking_id, **data), session)


@router.post("/{booking_id}/status", response_model=BookingDetailRead)
def change_booking_status(
    booking_id: int,
    change: StatusChange,
    session: UserSession = Depends(get_current_session),
):
    set_booking_status(booking_id, change.status, session)
    return get_booking_detail_dto(booking_id)


@router.post("/{booking_id}/commission-status", response_model=BookingDetailRead)
def change_commission_status(
    booking_id: int,
    change: StatusChange,
    session: UserSession = Depends(get_current_session),
):
    set_commission_status(booking_id, change.status, session)
    return get_booking_detail_dto(booking_id)


@router.post("/{booking_id}/rating", response_model=BookingDetailRead)
def rate_booking(
    booking_id: int,
    rating_in: RatingIn,
    session: UserSession = Depends(get_current_session),
):
    update_booking_rating(
        booking_id, rating_in.rating, session, is_completed=rating_in.is_completed
    )
    return get_booking_detail_dto(booking_id)


@router.delete("/{booking_id}")
def remove_booking(booking_id: int, session: UserSession = Depends(get_current_session)):
    delete_booking(booking_id, session)
    return {"status": "deleted"}
