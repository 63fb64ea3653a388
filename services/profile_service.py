"""Профили пользователей (агенты и администраторы)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from peewee import fn

from config import Settings
from database.db import db
from database.models import RATE_PLACES, Profile, UserRole
from services.access import AccessDeniedError, UserSession, require_role
from services.audit_log_service import add_audit_log
from services.filters import AgentFilters, apply_filters
from services.validators import (
    FieldValidationError,
    NotFoundError,
    normalize_email,
    normalize_person_name,
    optional_text,
    parse_decimal,
)

logger = logging.getLogger(__name__)

PROFILE_NAME_FIELDS = ("first_name", "last_name")


class ProfileNotFoundError(NotFoundError):
    def __init__(self, profile_id):
        super().__init__(f"Profile id={profile_id} not found")
        self.profile_id = profile_id


@dataclass
class ProfileDTO:
    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    agent_commission_percentage: Decimal | None
    accepting_new_bookings: bool

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_model(cls, profile: Profile) -> "ProfileDTO":
        return cls(
            id=profile.id,
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            role=profile.role,
            is_active=profile.is_active,
            agent_commission_percentage=profile.agent_commission_percentage,
            accepting_new_bookings=profile.accepting_new_bookings,
        )


def get_profile(profile_id: int) -> Profile:
    profile = Profile.get_or_none(Profile.id == profile_id)
    if profile is None:
        raise ProfileNotFoundError(profile_id)
    return profile


def get_session_for_profile(profile_id) -> UserSession | None:
    """Сессия активного профиля; ``None`` для неизвестных и отключённых."""
    try:
        profile = Profile.get_or_none(Profile.id == int(profile_id))
    except (TypeError, ValueError):
        return None
    if profile is None or not profile.is_active:
        return None
    return UserSession.from_profile(profile)


def list_agents(
    session: UserSession | None, filters: AgentFilters | None = None
) -> list[ProfileDTO]:
    require_role(session, UserRole.ADMIN)
    query = Profile.select().order_by(fn.LOWER(Profile.last_name), fn.LOWER(Profile.first_name))
    return apply_filters([ProfileDTO.from_model(p) for p in query], filters)


def _parse_role(value) -> UserRole:
    role = UserRole.parse(value)
    if role is None:
        allowed = ", ".join(r.value for r in UserRole)
        raise FieldValidationError("role", f"role must be one of: {allowed}")
    return role


def _parse_percentage(value) -> Decimal | None:
    return parse_decimal(
        "agent_commission_percentage",
        value,
        minimum=0,
        maximum=100,
        required=False,
        places=RATE_PLACES,
    )


def _check_role_grant(session: UserSession, role: UserRole) -> None:
    # only a SuperAdmin hands out SuperAdmin
    if role == UserRole.SUPER_ADMIN:
        require_role(session, UserRole.SUPER_ADMIN)


def create_agent(
    session: UserSession | None,
    email: str,
    first_name: str = "",
    last_name: str = "",
    role=UserRole.AGENT,
    agent_commission_percentage=None,
) -> Profile:
    """Создать профиль агента (Admin+)."""
    require_role(session, UserRole.ADMIN)
    new_role = _parse_role(role)
    _check_role_grant(session, new_role)
    clean_email = normalize_email(email)
    if clean_email is None:
        raise FieldValidationError("email", "email is required")
    with db.atomic():
        profile = Profile.create(
            email=clean_email,
            first_name=normalize_person_name(first_name),
            last_name=normalize_person_name(last_name),
            role=new_role.value,
            agent_commission_percentage=_parse_percentage(agent_commission_percentage),
        )
    logger.info("✅ Profile id=%s: %s (%s) created", profile.id, profile.email, profile.role)
    add_audit_log(session, "create", "profile", profile.id, {"email": profile.email, "role": profile.role})
    return profile


def update_agent(
    session: UserSession | None,
    profile_id: int,
    *,
    role=None,
    is_active: bool | None = None,
    agent_commission_percentage=None,
    clear_percentage: bool = False,
) -> Profile:
    """Изменить роль, активность или процент агента (Admin+)."""
    require_role(session, UserRole.ADMIN)
    profile = get_profile(profile_id)
    current = UserRole.parse(profile.role) or UserRole.AGENT
    # an Admin cannot edit a SuperAdmin
    if current == UserRole.SUPER_ADMIN and not session.can(UserRole.SUPER_ADMIN):
        raise AccessDeniedError(UserRole.SUPER_ADMIN, session.role)

    changes: dict = {}
    if role is not None:
        new_role = _parse_role(role)
        _check_role_grant(session, new_role)
        changes["role"] = new_role.value
    if is_active is not None:
        if not is_active and profile.id == session.profile_id:
            raise FieldValidationError("is_active", "You cannot deactivate your own profile")
        changes["is_active"] = bool(is_active)
    if clear_percentage:
        changes["agent_commission_percentage"] = None
    elif agent_commission_percentage is not None:
        changes["agent_commission_percentage"] = _parse_percentage(agent_commission_percentage)

    for key, value in changes.items():
        setattr(profile, key, value)
    if changes:
        with db.atomic():
            profile.save()
    logger.info("✏️ Profile id=%s updated: %s", profile.id, sorted(changes))
    add_audit_log(session, "update", "profile", profile.id, {k: str(v) for k, v in changes.items()})
    return profile


def update_own_profile(
    session: UserSession | None,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    accepting_new_bookings: bool | None = None,
) -> Profile:
    """Изменить собственное имя и готовность принимать бронирования."""
    require_role(session, UserRole.AGENT)
    profile = get_profile(session.profile_id)
    changes: dict = {}
    for key, value in (("first_name", first_name), ("last_name", last_name)):
        if value is not None:
            changes[key] = normalize_person_name(optional_text(value) or "")
    if accepting_new_bookings is not None:
        changes["accepting_new_bookings"] = bool(accepting_new_bookings)
    for key, value in changes.items():
        setattr(profile, key, value)
    if changes:
        with db.atomic():
            profile.save()
    add_audit_log(session, "update", "profile", profile.id, {"fields": sorted(changes)})
    return profile


def ensure_bootstrap_admin(settings: Settings) -> Profile | None:
    """Создать SuperAdmin из ``BOOTSTRAP_ADMIN_EMAIL``, если его ещё нет."""
    email = normalize_email(settings.bootstrap_admin_email)
    if email is None:
        return None
    profile, created = Profile.get_or_create(
        email=email, defaults={"role": UserRole.SUPER_ADMIN.value}
    )
    if created:
        logger.info("👤 Bootstrap SuperAdmin profile created: %s", email)
    return profile
