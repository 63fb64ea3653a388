import pytest

from database.models import Profile, UserRole
from services.access import AccessDeniedError, UserSession, check_access, require_role


@pytest.mark.parametrize(
    "user_role, required, allowed",
    [
        ("SuperAdmin", "SuperAdmin", True),
        ("SuperAdmin", "Admin", True),
        ("SuperAdmin", "Agent", True),
        ("Admin", "SuperAdmin", False),
        ("Admin", "Admin", True),
        ("Admin", "Agent", True),
        ("Agent", "SuperAdmin", False),
        ("Agent", "Admin", False),
        ("Agent", "Agent", True),
        (None, "Agent", False),
        ("Guest", "Agent", False),
        ("Agent", None, False),
    ],
)
def test_check_access_table(user_role, required, allowed):
    assert check_access(user_role, required) is allowed


def test_check_access_accepts_enum_members():
    assert check_access(UserRole.ADMIN, UserRole.AGENT)
    assert not check_access(UserRole.AGENT, UserRole.ADMIN)


def test_require_role_raises_permission_error():
    session = UserSession(profile_id=1, email="a@example.com", role=UserRole.AGENT)
    assert require_role(session, UserRole.AGENT) is session
    with pytest.raises(AccessDeniedError) as exc:
        require_role(session, UserRole.ADMIN)
    assert isinstance(exc.value, PermissionError)
    assert exc.value.required is UserRole.ADMIN
    with pytest.raises(AccessDeniedError, match="anonymous"):
        require_role(None, UserRole.AGENT)


def test_inactive_session_has_no_access():
    profile = Profile.create(email="old@example.com", role="Admin", is_active=False)
    session = UserSession.from_profile(profile)
    assert session.role is UserRole.ADMIN
    assert not session.can(UserRole.AGENT)


def test_unknown_stored_role_falls_back_to_agent():
    profile = Profile.create(email="odd@example.com", role="Boss")
    assert UserSession.from_profile(profile).role is UserRole.AGENT
