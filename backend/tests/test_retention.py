"""
Tests for the Retention Service and scheduler entry point.
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from survey.models.db_models import AuditEventType, AuditLogDB, SubmissionDB
from survey.services.retention import RetentionService, run_retention_sweep
from survey.time_utils import utcnow

HORIZON = 730


class TestPurge:

    def test_deletes_only_records_past_horizon(self, db, make_response):
        now = utcnow()
        keep = make_response(apartment="1", created_at=now - timedelta(days=HORIZON - 1))
        make_response(apartment="2", created_at=now - timedelta(days=HORIZON + 1))

        result = RetentionService(db).purge_older_than(HORIZON, now=now)

        assert result.deleted_count == 1
        assert [r.id for r in db.query(SubmissionDB).all()] == [keep.id]

    def test_appends_exactly_one_audit_entry(self, db, make_response):
        now = utcnow()
        make_response(apartment="1", created_at=now - timedelta(days=HORIZON + 1))
        make_response(apartment="2", created_at=now - timedelta(days=HORIZON + 30))

        result = RetentionService(db).purge_older_than(HORIZON, now=now)

        entries = db.query(AuditLogDB).all()
        assert len(entries) == 1
        assert entries[0].event_type == AuditEventType.AUTO_CLEANUP.value
        assert entries[0].ip_address == "system"
        assert entries[0].details == {
            "deleted_count": 2,
            "retention_days": HORIZON,
            "cutoff": result.cutoff.isoformat(),
        }

    def test_nothing_past_horizon_logs_nothing(self, db, make_response):
        now = utcnow()
        make_response(created_at=now - timedelta(days=10))

        result = RetentionService(db).purge_older_than(HORIZON, now=now)

        assert result.deleted_count == 0
        assert db.query(AuditLogDB).count() == 0
        assert db.query(SubmissionDB).count() == 1

    def test_manual_purge_uses_same_logic(self, db, make_response):
        now = utcnow()
        make_response(created_at=now - timedelta(days=40))

        result = RetentionService(db).purge_older_than(
            30, client_ip="203.0.113.7", event_type=AuditEventType.MANUAL_CLEANUP, now=now
        )

        entry = db.query(AuditLogDB).one()
        assert result.deleted_count == 1
        assert entry.event_type == "manual_cleanup"
        assert entry.ip_address == "203.0.113.7"

    def test_audit_entries_survive_purge(self, db, make_response):
        """Audit entries are retained independently of responses."""
        now = utcnow()
        make_response(created_at=now - timedelta(days=HORIZON + 1))
        db.add(AuditLogDB(event_type="submission", ip_address="x", details={"response_id": 1}))
        db.commit()

        RetentionService(db).purge_older_than(HORIZON, now=now)

        assert db.query(AuditLogDB).filter_by(event_type="submission").count() == 1

    def test_rejects_non_positive_horizon(self, db):
        with pytest.raises(ValueError):
            RetentionService(db).purge_older_than(0)


class TestScheduledSweep:

    def test_sweep_uses_its_own_session(self, session_factory, make_response, db):
        make_response(created_at=utcnow() - timedelta(days=HORIZON + 5))

        result = run_retention_sweep(session_factory, HORIZON)

        assert result.deleted_count == 1
        db.expire_all()
        assert db.query(SubmissionDB).count() == 0

    def test_sweep_failure_is_logged_not_raised(self):
        broken_session = MagicMock()
        broken_session.query.side_effect = RuntimeError("database is locked")
        factory = MagicMock(return_value=broken_session)

        assert run_retention_sweep(factory, HORIZON) is None
        broken_session.rollback.assert_called_once()
        broken_session.close.assert_called_once()
