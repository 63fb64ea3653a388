"""Журнал действий пользователей."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from peewee import PeeweeException

from database.models import AuditLog, UserRole
from services.access import UserSession, require_role

logger = logging.getLogger(__name__)


@dataclass
class AuditLogDTO:
    id: int
    user_id: int | None
    user_email: str | None
    action: str
    resource_type: str
    resource_id: str | None
    details: dict | None
    created_at: datetime

    @classmethod
    def from_model(cls, entry: AuditLog) -> "AuditLogDTO":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            user_email=entry.user_email,
            action=entry.action,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            details=json.loads(entry.details) if entry.details else None,
            created_at=entry.created_at,
        )


def add_audit_log(
    session: UserSession | None,
    action: str,
    resource_type: str,
    resource_id: Any = None,
    details: dict | None = None,
) -> AuditLog | None:
    """Записать действие пользователя.

    Без сессии ничего не пишется. Ошибка записи логируется и не прерывает
    основную операцию.
    """
    if session is None:
        logger.warning("Audit log skipped for %s %s: no user session", action, resource_type)
        return None
    try:
        return AuditLog.create(
            user=session.profile_id,
            user_email=session.email,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            details=json.dumps(details, default=str) if details else None,
        )
    except PeeweeException as exc:
        logger.error("❌ Failed to write audit log %s %s: %s", action, resource_type, exc)
        return None


def list_audit_logs(
    session: UserSession | None,
    *,
    resource_type: str | None = None,
    limit: int = 100,
) -> list[AuditLogDTO]:
    """Последние записи журнала (только для администраторов)."""
    require_role(session, UserRole.ADMIN)
    query = AuditLog.select().order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    if resource_type:
        query = query.where(AuditLog.resource_type == resource_type)
    return [AuditLogDTO.from_model(e) for e in query.limit(limit)]
