from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from services.access import UserSession
from services.clients import (
    ClientCreateCommand,
    ClientUpdateCommand,
    create_client_from_command,
    delete_client,
    get_client_detail_dto,
    list_client_rows,
    update_client_from_command,
)
from services.export_service import render_export
from services.filters import ClientFilters
from ..deps import get_current_session
from ..schemas import ClientCreate, ClientDetailRead, ClientRead, ClientUpdate

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/", response_model=list[ClientRead])
def read_clients(
    search: str = "",
    session: UserSession = Depends(get_current_session),
):
    return list_client_rows(ClientFilters(search_term=search))


@router.get("/export")
def export_clients(
    fmt: str = Query("csv", pattern="^(csv|xlsx)$"),
    search: str = "",
    session: UserSession = Depends(get_current_session),
):
    name, content, media_type = render_export(
        "clients", list_client_rows(ClientFilters(search_term=search)), fmt
    )
    return Response(
        content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


@router.post("/", response_model=ClientDetailRead, status_code=201)
def add_client(client_in: ClientCreate, session: UserSession = Depends(get_current_session)):
    command = ClientCreateCommand(**client_in.model_dump())
    return create_client_from_command(command, session)


@router.get("/{client_id}", response_model=ClientDetailRead)
def read_client(client_id: int, session: UserSession = Depends(get_current_session)):
    return get_client_detail_dto(client_id)


@router.put("/{client_id}", response_model=ClientDetailRead)
def edit_client(
    client_id: int,
    client_in: ClientUpdate,
    session: UserSession = Depends(get_current_session),
):
    command = ClientUpdateCommand(id=client_id, **client_in.model_dump(exclude_none=True))
    return update_client_from_command(command, session)


@router.delete("/{client_id}")
def remove_client(client_id: int, session: UserSession = Depends(get_current_session)):
    delete_client(client_id, session)
    return {"status": "deleted"}
