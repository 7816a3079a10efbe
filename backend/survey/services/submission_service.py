"""
Submission Service

Accepts a validated survey response:

    fingerprint -> duplicate check -> insert + audit (one commit)

Rate limiting happens before this service is reached.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.orm import Session

from ..models.db_models import SubmissionDB, AuditEventType
from .audit_trail import AuditTrailService
from .duplicate_detector import DuplicateDetector, DuplicateVerdict
from .fingerprint import generate_submission_fingerprint

logger = logging.getLogger(__name__)


@dataclass
class SubmissionData:
    """Validated form fields plus request provenance."""
    building: str
    status: str
    has_ev: str
    interested: str
    apartment: Optional[str] = None
    parking_spot: Optional[str] = None
    preferred_solution: Optional[str] = None
    timeline: Optional[str] = None
    comments: Optional[str] = None
    email: Optional[str] = None
    consent_contact: bool = False
    consent_timestamp: Optional[datetime] = None

    @property
    def consented_email(self) -> Optional[str]:
        """The email, only when the resident agreed to be contacted."""
        if not self.consent_contact or not self.email:
            return None
        return self.email.strip().lower()


class DuplicateSubmissionError(Exception):
    def __init__(self, verdict: DuplicateVerdict):
        super().__init__(f"duplicate submission ({verdict.kind.value}) of response {verdict.record_id}")
        self.verdict = verdict


class SubmissionService:
    """
    Usage:
        response = SubmissionService(db).submit(data, client_ip, user_agent)
    """

    def __init__(self, db: Session, detector: Optional[DuplicateDetector] = None):
        self.db = db
        self.audit = AuditTrailService(db)
        self.detector = detector or DuplicateDetector(db)

    def submit(
        self,
        data: SubmissionData,
        client_ip: str,
        user_agent: Optional[str] = None,
    ) -> SubmissionDB:
        """
        Persist a response or raise DuplicateSubmissionError.

        Duplicate attempts are audit-logged with a reference to the
        original response.
        """
        email = data.consented_email
        fingerprint = generate_submission_fingerprint(
            building=data.building,
            apartment=data.apartment,
            email=email,
            status=data.status,
        )

        verdict = self.detector.check(fingerprint, email, data.building)
        if verdict:
            self.audit.record(AuditEventType.DUPLICATE_ATTEMPT, client_ip, {
                "building": data.building,
                "duplicate_type": verdict.kind.value,
                "original_id": verdict.record_id,
            })
            logger.info(f"Rejected {verdict.kind.value} duplicate of response {verdict.record_id}")
            raise DuplicateSubmissionError(verdict)

        response = SubmissionDB(
            building=data.building,
            apartment=data.apartment or None,
            parking_spot=data.parking_spot or None,
            status=data.status,
            has_ev=data.has_ev,
            interested=data.interested,
            preferred_solution=data.preferred_solution or None,
            timeline=data.timeline or None,
            comments=data.comments or None,
            email=email,
            consent_contact=email is not None,
            consent_timestamp=data.consent_timestamp if email else None,
            ip_address=client_ip,
            user_agent=(user_agent or "unknown")[:512],
            submission_hash=fingerprint,
        )
        self.db.add(response)
        self.db.flush()

        self.audit.record(AuditEventType.SUBMISSION, client_ip, {
            "response_id": response.id,
            "building": data.building,
            "has_consent": email is not None,
        }, commit=False)
        self.db.commit()
        self.db.refresh(response)

        return response
