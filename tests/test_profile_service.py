from decimal import Decimal

import pytest

from config import Settings
from database.models import Profile, UserRole
from services.access import AccessDeniedError
from services.filters import AgentFilters
from services.profile_service import (
    create_agent,
    ensure_bootstrap_admin,
    get_session_for_profile,
    list_agents,
    update_agent,
    update_own_profile,
)
from services.validators import FieldValidationError


def test_session_lookup(agent_session):
    session = get_session_for_profile(str(agent_session.profile_id))
    assert session.email == "agent@example.com"
    assert session.role is UserRole.AGENT
    assert get_session_for_profile("abc") is None
    assert get_session_for_profile(None) is None
    assert get_session_for_profile(999) is None

    Profile.update(is_active=False).where(Profile.id == agent_session.profile_id).execute()
    assert get_session_for_profile(agent_session.profile_id) is None


def test_admin_creates_agent(admin_session):
    profile = create_agent(
        admin_session, " New@Example.com ", "lena", "park", agent_commission_percentage="35"
    )
    assert profile.email == "new@example.com"
    assert profile.full_name == "Lena Park"
    assert profile.role == "Agent"
    assert profile.agent_commission_percentage == Decimal("35")


def test_agent_cannot_manage_profiles(agent_session):
    with pytest.raises(AccessDeniedError):
        create_agent(agent_session, "x@example.com")
    with pytest.raises(AccessDeniedError):
        list_agents(agent_session)


def test_only_super_admin_grants_super_admin(admin_session, super_session):
    with pytest.raises(AccessDeniedError):
        create_agent(admin_session, "boss@example.com", role="SuperAdmin")
    boss = create_agent(super_session, "boss@example.com", role="SuperAdmin")
    with pytest.raises(AccessDeniedError):
        update_agent(admin_session, boss.id, is_active=False)
    with pytest.raises(FieldValidationError):
        create_agent(super_session, "odd@example.com", role="Owner")


def test_update_agent(admin_session, agent_session):
    profile = update_agent(
        admin_session, agent_session.profile_id, role="Admin", agent_commission_percentage="20"
    )
    assert profile.role == "Admin"
    assert profile.agent_commission_percentage == Decimal("20")
    profile = update_agent(admin_session, agent_session.profile_id, clear_percentage=True)
    assert profile.agent_commission_percentage is None
    with pytest.raises(FieldValidationError):
        update_agent(admin_session, agent_session.profile_id, agent_commission_percentage="150")


def test_cannot_deactivate_self(admin_session):
    with pytest.raises(FieldValidationError) as exc:
        update_agent(admin_session, admin_session.profile_id, is_active=False)
    assert exc.value.field == "is_active"


def test_list_agents_sorted_and_filtered(admin_session, agent_session, super_session):
    rows = list_agents(admin_session)
    assert [r.email for r in rows] == [
        "admin@example.com",
        "agent@example.com",
        "root@example.com",
    ]
    assert [r.full_name for r in list_agents(admin_session, AgentFilters(search_term="root@"))] == [
        "Sam User"
    ]


def test_update_own_profile(agent_session):
    profile = update_own_profile(agent_session, first_name="anna-maria", accepting_new_bookings=False)
    assert profile.first_name == "Anna-Maria"
    assert profile.accepting_new_bookings is False


def test_bootstrap_admin_is_idempotent(tmp_path):
    settings = Settings(log_dir=str(tmp_path), bootstrap_admin_email="Owner@Example.com")
    first = ensure_bootstrap_admin(settings)
    second = ensure_bootstrap_admin(settings)
    assert first.id == second.id
    assert first.role == UserRole.SUPER_ADMIN.value
    assert ensure_bootstrap_admin(Settings(log_dir=str(tmp_path))) is None
