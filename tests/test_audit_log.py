import pytest

from database.models import AuditLog
from services.access import AccessDeniedError
from services.audit_log_service import add_audit_log, list_audit_logs


def test_entry_records_user_and_details(agent_session):
    entry = add_audit_log(agent_session, "create", "client", 5, {"name": "Jane Doe"})
    assert entry.user_id == agent_session.profile_id
    assert entry.user_email == "agent@example.com"
    assert entry.resource_id == "5"


def test_no_session_no_entry():
    assert add_audit_log(None, "create", "client", 1) is None
    assert AuditLog.select().count() == 0


def test_listing_is_admin_only_and_filterable(agent_session, admin_session):
    add_audit_log(agent_session, "create", "client", 1, {"name": "A"})
    add_audit_log(agent_session, "delete", "vendor", 2)
    with pytest.raises(AccessDeniedError):
        list_audit_logs(agent_session)

    entries = list_audit_logs(admin_session)
    assert [e.action for e in entries] == ["delete", "create"]
    assert entries[1].details == {"name": "A"}
    assert [e.resource_type for e in list_audit_logs(admin_session, resource_type="vendor")] == [
        "vendor"
    ]
