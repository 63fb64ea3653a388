from fastapi import APIRouter, Depends, Query

from database.models import UserRole
from services.access import UserSession
from services.audit_log_service import list_audit_logs
from ..deps import require_role
from ..schemas import AuditLogRead

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("/", response_model=list[AuditLogRead])
def read_audit_logs(
    resource_type: str | None = None,
    limit: int = Query(100, ge=1, le=1000),
    session: UserSession = Depends(require_role(UserRole.ADMIN)),
):
    return list_audit_logs(session, resource_type=resource_type, limit=limit)
