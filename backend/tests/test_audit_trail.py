"""
Tests for the append-only Audit Trail.
"""
import pytest

from survey.models.db_models import AuditEventType, AuditLogDB, AuditLogImmutableError
from survey.services.audit_trail import AuditTrailService, redact_email


@pytest.fixture
def audit(db):
    return AuditTrailService(db)


class TestRecord:

    def test_record_persists_entry(self, audit, db):
        entry = audit.record(AuditEventType.LOGIN, "203.0.113.7", {"success": True})

        stored = db.get(AuditLogDB, entry.id)
        assert stored.event_type == "login"
        assert stored.ip_address == "203.0.113.7"
        assert stored.details == {"success": True}
        assert stored.created_at is not None

    def test_accepts_event_type_string(self, audit):
        entry = audit.record("logout", "203.0.113.7")

        assert entry.event_type == "logout"
        assert entry.details == {}

    def test_unknown_event_type_rejected(self, audit):
        with pytest.raises(ValueError):
            audit.record("made_up_event", "203.0.113.7")

    def test_uncommitted_entry_rolls_back_with_caller(self, audit, db):
        audit.record(AuditEventType.SUBMISSION, "203.0.113.7", {"response_id": 1}, commit=False)
        db.rollback()

        assert audit.count() == 0


class TestImmutability:

    def test_entries_cannot_be_updated(self, audit, db):
        entry = audit.record(AuditEventType.LOGIN, "203.0.113.7", {"success": False})

        entry.details = {"success": True}
        with pytest.raises(AuditLogImmutableError):
            db.commit()
        db.rollback()

    def test_entries_cannot_be_deleted(self, audit, db):
        entry = audit.record(AuditEventType.LOGIN, "203.0.113.7")

        db.delete(entry)
        with pytest.raises(AuditLogImmutableError):
            db.commit()
        db.rollback()

        assert audit.count() == 1


class TestListEntries:

    def test_newest_first_with_pagination(self, audit):
        for i in range(5):
            audit.record(AuditEventType.SUBMISSION, "203.0.113.7", {"response_id": i})

        first_page = audit.list_entries(limit=2, offset=0)
        second_page = audit.list_entries(limit=2, offset=2)

        assert [e.details["response_id"] for e in first_page] == [4, 3]
        assert [e.details["response_id"] for e in second_page] == [2, 1]

    def test_limit_is_clamped(self, audit):
        for _ in range(3):
            audit.record(AuditEventType.LOGOUT, "203.0.113.7")

        assert len(audit.list_entries(limit=0)) == 1
        assert len(audit.list_entries(limit=10_000)) == 3

    def test_filter_by_event_type(self, audit):
        audit.record(AuditEventType.LOGIN, "203.0.113.7", {"success": True})
        audit.record(AuditEventType.LOGOUT, "203.0.113.7")
        audit.record(AuditEventType.LOGIN, "203.0.113.8", {"success": False})

        logins = audit.list_entries(event_type=AuditEventType.LOGIN)

        assert len(logins) == 2
        assert audit.count(AuditEventType.LOGOUT) == 1


class TestRedactEmail:

    def test_keeps_three_characters(self):
        assert redact_email("resident@example.com") == "res***"

    def test_empty_email(self):
        assert redact_email(None) is None
        assert redact_email("") is None
