from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from services.access import UserSession
from services.export_service import render_export
from services.filters import TripFilters
from services.trip_service import (
    TripCreateCommand,
    TripUpdateCommand,
    create_trip_from_command,
    delete_trip,
    get_trip_detail_dto,
    list_trip_rows,
    set_trip_status,
    update_trip_from_command,
)
from ..deps import get_current_session
from ..schemas import StatusChange, TripCreate, TripDetailRead, TripRead, TripUpdate

router = APIRouter(prefix="/trips", tags=["trips"])


def trip_filters(
    search: str = "",
    statuses: list[str] = Query(default=[]),
    high_priority: bool = False,
) -> TripFilters:
    return TripFilters(search_term=search, statuses=statuses, high_priority_only=high_priority)


@router.get("/", response_model=list[TripRead])
def read_trips(
    filters: TripFilters = Depends(trip_filters),
    session: UserSession = Depends(get_current_session),
):
    return list_trip_rows(filters)


@router.get("/export")
def export_trips(
    fmt: str = Query("csv", pattern="^(csv|xlsx)$"),
    filters: TripFilters = Depends(trip_filters),
    session: UserSession = Depends(get_current_session),
):
    name, content, media_type = render_export("trips", list_trip_rows(filters), fmt)
    return Response(
        content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


@router.post("/", response_model=TripDetailRead, status_code=201)
def add_trip(trip_in: TripCreate, session: UserSession = Depends(get_current_session)):
    data = trip_in.model_dump(exclude_none=True)
    data["client_ids"] = tuple(data.get("client_ids", ()))
    return create_trip_from_command(TripCreateCommand(**data), session)


@router.get("/{trip_id}", response_model=TripDetailRead)
def read_trip(trip_id: int, session: UserSession = Depends(get_current_session)):
    return get_trip_detail_dto(trip_id)


@router.put("/{trip_id}", response_model=TripDetailRead)
def edit_trip(
    trip_id: int,
    trip_in: TripUpdate,
    session: UserSession = Depends(get_current_session),
):
    data = trip_in.model_dump(exclude_none=True)
    if "client_ids" in data:
        data["client_ids"] = tuple(data["client_ids"])
    return update_trip_from_command(TripUpdateCommand(id=trip_id, **data), session)


@router.post("/{trip_id}/status", response_model=TripDetailRead)
def change_trip_status(
    trip_id: int,
    change: StatusChange,
    session: UserSession = Depends(get_current_session),
):
    set_trip_status(trip_id, change.status, session)
    return get_trip_detail_dto(trip_id)


@router.delete("/{trip_id}")
def remove_trip(trip_id: int, session: UserSession = Depends(get_current_session)):
    delete_trip(trip_id, session)
    return {"status": "deleted"}
