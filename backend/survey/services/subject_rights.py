"""
Subject Rights Service (RGPD)

Access, erasure and consent withdrawal for a data subject identified by
email address.

- The public intake only acknowledges a request; it never returns data.
- Fulfillment (export / delete / withdraw) is admin-only.
- Every count reported is the row count of the single statement that
  did the work.
- Audit details carry a redacted email, never the full address.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List
import logging

from sqlalchemy.orm import Session

from ..models.db_models import SubmissionDB, AuditEventType
from .audit_trail import AuditTrailService, redact_email

logger = logging.getLogger(__name__)


class SubjectRequestType(str, Enum):
    ACCESS = "access"
    DELETE = "delete"


ACKNOWLEDGEMENTS = {
    SubjectRequestType.ACCESS: "Votre demande d'accès a été enregistrée. Vous recevrez vos données par email.",
    SubjectRequestType.DELETE: "Votre demande de suppression a été enregistrée. Elle sera traitée sous 30 jours.",
}


class SubjectNotFoundError(LookupError):
    """No response matches the requested email."""


@dataclass(frozen=True)
class IntakeReceipt:
    request_type: SubjectRequestType
    message: str


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class SubjectRightsService:
    """
    Usage:
        service = SubjectRightsService(db)
        records = service.export_records(email, client_ip)
    """

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditTrailService(db)

    def _matching(self, email: str):
        return self.db.query(SubmissionDB).filter(SubmissionDB.email == normalize_email(email))

    def count_records(self, email: str) -> int:
        if not normalize_email(email):
            return 0
        return self._matching(email).count()

    # =========================================================================
    # PUBLIC INTAKE
    # =========================================================================

    def register_request(
        self,
        email: str,
        request_type: SubjectRequestType,
        client_ip: str,
    ) -> IntakeReceipt:
        """
        Record a subject's request for an administrator to fulfil.

        The reply is identical whether or not the email is known, so the
        public endpoint cannot be used to find out which addresses answered.
        The first version of the survey answered 404 for unknown emails and
        only logged requests that matched; every request is logged now, with
        the match count kept in the audit details for the administrator.
        """
        request_type = SubjectRequestType(request_type)
        found = self.count_records(email)

        self.audit.record(AuditEventType.RGPD_REQUEST, client_ip, {
            "email": redact_email(email),
            "type": request_type.value,
            "records_found": found,
        })

        return IntakeReceipt(request_type=request_type, message=ACKNOWLEDGEMENTS[request_type])

    # =========================================================================
    # ADMIN FULFILLMENT
    # =========================================================================

    def export_records(self, email: str, client_ip: str) -> List[Dict[str, Any]]:
        """All stored fields of every response for this email, newest first."""
        records = self._matching(email).order_by(SubmissionDB.created_at.desc()).all()
        if not records:
            raise SubjectNotFoundError(redact_email(email))

        self.audit.record(AuditEventType.RGPD_EXPORT, client_ip, {
            "email": redact_email(email),
            "records_exported": len(records),
        })
        return [r.to_export_dict() for r in records]

    def delete_records(self, email: str, client_ip: str) -> int:
        """Erase every response for this email. Returns the deleted count."""
        deleted = self._matching(email).delete(synchronize_session=False)
        if deleted == 0:
            self.db.rollback()
            raise SubjectNotFoundError(redact_email(email))

        self.audit.record(AuditEventType.RGPD_DELETE, client_ip, {
            "email": redact_email(email),
            "records_deleted": deleted,
        }, commit=False)
        self.db.commit()

        logger.info(f"Erased {deleted} response(s) for {redact_email(email)}")
        return deleted

    def withdraw_consent(self, email: str, client_ip: str) -> int:
        """
        Clear contact consent and drop the email from every matching response.
        Irreversible: the address is not kept anywhere.
        """
        updated = self._matching(email).update(
            {
                SubmissionDB.consent_contact: False,
                SubmissionDB.email: None,
                SubmissionDB.consent_timestamp: None,
            },
            synchronize_session=False,
        )
        if updated == 0:
            self.db.rollback()
            raise SubjectNotFoundError(redact_email(email))

        self.audit.record(AuditEventType.CONSENT_WITHDRAWN, client_ip, {
            "email": redact_email(email),
            "records_updated": updated,
        }, commit=False)
        self.db.commit()

        logger.info(f"Consent withdrawn on {updated} response(s) for {redact_email(email)}")
        return updated
