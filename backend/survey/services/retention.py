"""
Retention Service

Hard delete of responses older than the retention horizon.
No soft-delete, no archival. Audit entries are kept.

The same purge is used by the daily scheduler (auto_cleanup) and by the
admin cleanup endpoint (manual_cleanup).
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy.orm import Session, sessionmaker

from ..models.db_models import SubmissionDB, AuditEventType
from ..time_utils import utcnow
from .audit_trail import AuditTrailService

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 730
SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class RetentionResult:
    deleted_count: int
    retention_days: int
    cutoff: datetime

    def to_dict(self) -> dict:
        return {
            "deleted_count": self.deleted_count,
            "retention_days": self.retention_days,
            "cutoff": self.cutoff.isoformat(),
        }


class RetentionService:
    """
    Purges expired responses and records the purge.

    Usage:
        result = RetentionService(db).purge_older_than(730)
    """

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditTrailService(db)

    def purge_older_than(
        self,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        client_ip: str = SYSTEM_ACTOR,
        event_type: AuditEventType = AuditEventType.AUTO_CLEANUP,
        now: Optional[datetime] = None,
    ) -> RetentionResult:
        """
        Delete every response created before now - retention_days.

        The DELETE row count is the reported count. A purge that matches
        nothing writes no audit entry.
        """
        if retention_days < 1:
            raise ValueError("retention_days must be at least 1")

        now = now or utcnow()
        cutoff = now - timedelta(days=retention_days)

        deleted = self.db.query(SubmissionDB).filter(
            SubmissionDB.created_at < cutoff
        ).delete(synchronize_session=False)

        result = RetentionResult(deleted_count=deleted, retention_days=retention_days, cutoff=cutoff)

        if deleted == 0:
            self.db.rollback()
            return result

        self.audit.record(event_type, client_ip, result.to_dict(), commit=False)
        self.db.commit()

        logger.info(f"Retention purge removed {deleted} response(s) older than {retention_days} days")
        return result


def run_retention_sweep(session_factory: sessionmaker, retention_days: int) -> Optional[RetentionResult]:
    """
    Scheduler entry point: one session per sweep, failures logged not raised.
    """
    db = session_factory()
    try:
        return RetentionService(db).purge_older_than(retention_days)
    except Exception as e:
        db.rollback()
        logger.error(f"Retention sweep failed: {e}", exc_info=True)
        return None
    finally:
        db.close()
