"""
Audit Trail Service

Append-only log of every operation touching responses or admin sessions.

Core Principles:
1. The log records what happened. It never decides.
2. Append-only - entries are never updated or deleted.
3. No full email addresses in details - use redact_email().
4. Retained independently of response retention.
"""
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ..models.db_models import AuditLogDB, AuditEventType

MAX_PAGE_SIZE = 500
DEFAULT_PAGE_SIZE = 100


def redact_email(email: Optional[str]) -> Optional[str]:
    """Keep only the first three characters of an address."""
    if not email:
        return None
    return email.strip()[:3] + "***"


class AuditTrailService:
    """
    Writes and reads the audit log.

    Usage:
        audit = AuditTrailService(db)
        audit.record(AuditEventType.LOGIN, client_ip, {"success": True})
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        event_type: Union[AuditEventType, str],
        client_ip: Optional[str],
        details: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> AuditLogDB:
        """
        Append one entry.

        With commit=False the entry joins the caller's transaction, so it is
        persisted together with the change it describes.
        """
        entry = AuditLogDB(
            event_type=AuditEventType(event_type).value,
            ip_address=client_ip,
            details=details or {},
        )
        self.db.add(entry)
        if commit:
            self.db.commit()
        else:
            self.db.flush()
        return entry

    def list_entries(
        self,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
        event_type: Optional[Union[AuditEventType, str]] = None,
    ) -> List[AuditLogDB]:
        """Newest first. limit is clamped to [1, MAX_PAGE_SIZE]."""
        limit = max(1, min(int(limit), MAX_PAGE_SIZE))
        offset = max(0, int(offset))

        query = self.db.query(AuditLogDB)
        if event_type is not None:
            query = query.filter(AuditLogDB.event_type == AuditEventType(event_type).value)

        return query.order_by(
            AuditLogDB.created_at.desc(), AuditLogDB.id.desc()
        ).offset(offset).limit(limit).all()

    def count(self, event_type: Optional[Union[AuditEventType, str]] = None) -> int:
        query = self.db.query(AuditLogDB)
        if event_type is not None:
            query = query.filter(AuditLogDB.event_type == AuditEventType(event_type).value)
        return query.count()
