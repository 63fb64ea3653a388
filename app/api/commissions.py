from fastapi import APIRouter, Depends, Query

from database.models import UserRole
from services.access import UserSession
from services.bookings import (
    get_commission_summary,
    list_agent_commission_shares,
    list_commission_rows,
)
from services.filters import CommissionFilters
from ..deps import require_role
from ..schemas import AgentShareRead, BookingRead, CommissionSummaryRead

router = APIRouter(prefix="/commissions", tags=["commissions"])

admin_only = require_role(UserRole.ADMIN)


def commission_filters(
    search: str = "",
    commission_statuses: list[str] = Query(default=[]),
) -> CommissionFilters:
    return CommissionFilters(search_term=search, commission_statuses=commission_statuses)


@router.get("/", response_model=list[BookingRead])
def read_commissions(
    filters: CommissionFilters = Depends(commission_filters),
    agent_id: int | None = None,
    session: UserSession = Depends(admin_only),
):
    return list_commission_rows(session, filters, agent_id=agent_id)


@router.get("/summary", response_model=CommissionSummaryRead)
def read_commission_summary(
    filters: CommissionFilters = Depends(commission_filters),
    agent_id: int | None = None,
    session: UserSession = Depends(admin_only),
):
    return get_commission_summary(session, filters, agent_id=agent_id)


@router.get("/agents", response_model=list[AgentShareRead])
def read_agent_shares(
    filters: CommissionFilters = Depends(commission_filters),
    session: UserSession = Depends(admin_only),
):
    return [vars(share) for share in list_agent_commission_shares(session, filters)]
