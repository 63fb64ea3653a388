from datetime import date
from pathlib import Path
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from database.models import BookingStatus, CommissionStatus, UserRole
from services.access import UserSession
from services.bookings import BookingNotFoundError, get_booking_detail_dto, list_booking_rows
from services.commission import format_commission, summarize_commissions
from services.filters import BookingFilters, DateRange, count_active_filters
from services.reference_service import list_service_types
from ..deps import get_current_session

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

router = APIRouter()
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["usd"] = format_commission


@router.get("/", response_class=HTMLResponse)
def index():
    return RedirectResponse("/bookings", status_code=303)


@router.get("/bookings", response_class=HTMLResponse)
def bookings_page(
    request: Request,
    client_search: str = "",
    search: str = "",
    service_types: list[str] = Query(default=[]),
    date_from: date | None = None,
    date_to: date | None = None,
    booking_statuses: list[str] = Query(default=[]),
    commission_statuses: list[str] = Query(default=[]),
    notice: str | None = None,
    session: UserSession = Depends(get_current_session),
):
    filters = BookingFilters(
        client_search_term=client_search,
        search_term=search,
        service_types=service_types,
        date_range=DateRange(date_from, date_to),
        booking_statuses=booking_statuses,
        commission_statuses=commission_statuses,
    )
    rows = list_booking_rows(filters)
    summary = summarize_commissions(rows) if session.can(UserRole.ADMIN) else None
    return templates.TemplateResponse(
        request,
        "bookings.html",
        {
            "rows": rows,
            "filters": filters,
            "active_filters": count_active_filters(filters),
            "summary": summary,
            "notice": notice,
            "session": session,
            "service_types": [st.name for st in list_service_types()],
            "booking_status_options": [s.value for s in BookingStatus],
            "commission_status_options": [s.value for s in CommissionStatus],
        },
    )


@router.get("/bookings/{booking_id}", response_class=HTMLResponse)
def booking_detail_page(
    request: Request,
    booking_id: int,
    session: UserSession = Depends(get_current_session),
):
    try:
        booking = get_booking_detail_dto(booking_id)
    except BookingNotFoundError:
        notice = quote(f"Booking #{booking_id} was not found")
        return RedirectResponse(f"/bookings?notice={notice}", status_code=303)
    return templates.TemplateResponse(
        request, "booking_detail.html", {"booking": booking, "session": session}
    )
