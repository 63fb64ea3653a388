from fastapi import APIRouter, Depends

from database.models import UserRole
from services.access import UserSession
from services.filters import AgentFilters
from services.profile_service import (
    ProfileDTO,
    create_agent,
    get_profile,
    list_agents,
    update_agent,
    update_own_profile,
)
from ..deps import get_current_session, require_role
from ..schemas import AgentCreate, AgentUpdate, OwnProfileUpdate, ProfileRead

router = APIRouter(prefix="/agents", tags=["agents"])


@router.get("/", response_model=list[ProfileRead])
def read_agents(search: str = "", session: UserSession = Depends(require_role(UserRole.ADMIN))):
    return list_agents(session, AgentFilters(search_term=search))


@router.get("/me", response_model=ProfileRead)
def read_own_profile(session: UserSession = Depends(get_current_session)):
    return ProfileDTO.from_model(get_profile(session.profile_id))


@router.put("/me", response_model=ProfileRead)
def edit_own_profile(data: OwnProfileUpdate, session: UserSession = Depends(get_current_session)):
    return ProfileDTO.from_model(update_own_profile(session, **data.model_dump()))


@router.post("/", response_model=ProfileRead, status_code=201)
def add_agent(data: AgentCreate, session: UserSession = Depends(require_role(UserRole.ADMIN))):
    return ProfileDTO.from_model(create_agent(session, **data.model_dump()))


@router.put("/{profile_id}", response_model=ProfileRead)
def edit_agent(
    profile_id: int,
    data: AgentUpdate,
    session: UserSession = Depends(require_role(UserRole.ADMIN)),
):
    return ProfileDTO.from_model(update_agent(session, profile_id, **data.model_dump()))
