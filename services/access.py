"""Role checks and the per-request user session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from database.models import Profile, UserRole


class AccessDeniedError(PermissionError):
    """The current user's role is below the one an operation requires."""

    def __init__(self, required: UserRole, actual: UserRole | None = None):
        who = actual.value if actual else "anonymous user"
        super().__init__(f"{required.value} role required ({who})")
        self.required = required
        self.actual = actual


def check_access(user_role: Any, required_role: Any) -> bool:
    """``True`` if ``user_role`` may act with ``required_role``.

    SuperAdmin passes every check, Admin everything except SuperAdmin,
    Agent only Agent. Missing or unknown roles never pass.
    """
    role = UserRole.parse(user_role) if user_role is not None else None
    required = UserRole.parse(required_role) if required_role is not None else None
    if role is None or required is None:
        return False
    return role >= required


@dataclass(frozen=True)
class UserSession:
    """Identity of whoever performs an operation."""

    profile_id: int
    email: str
    role: UserRole
    is_active: bool = True
    full_name: str = ""

    @classmethod
    def from_profile(cls, profile: Profile) -> "UserSession":
        return cls(
            profile_id=profile.id,
            email=profile.email,
            role=UserRole.parse(profile.role) or UserRole.AGENT,
            is_active=profile.is_active,
            full_name=profile.full_name,
        )

    def can(self, required_role: UserRole) -> bool:
        return self.is_active and check_access(self.role, required_role)


def require_role(session: UserSession | None, required_role: UserRole) -> UserSession:
    """Return ``session`` or raise :class:`AccessDeniedError`."""
    if session is None or not session.can(required_role):
        raise AccessDeniedError(required_role, session.role if session else None)
    return session
