"""Зависимости FastAPI: текущий пользователь и проверка роли."""

from fastapi import Depends, Header, HTTPException

from database.models import UserRole
from services.access import UserSession
from services.profile_service import get_session_for_profile


def get_current_session(x_profile_id: str | None = Header(default=None)) -> UserSession:
    """Сессия по заголовку ``X-Profile-Id``."""
    if not x_profile_id:
        raise HTTPException(status_code=401, detail="X-Profile-Id header is required")
    session = get_session_for_profile(x_profile_id)
    if session is None:
        raise HTTPException(status_code=401, detail="Unknown or inactive profile")
    return session


def require_role(role: UserRole):
    def dependency(session: UserSession = Depends(get_current_session)) -> UserSession:
        if not session.can(role):
            raise HTTPException(status_code=403, detail=f"{role.value} role required")
        return session

    return dependency
