"""
Duplicate Detector

Two policy windows, evaluated in order, first match wins:

1. Exact fingerprint within 24 hours  -> accidental double submit / replay
2. Same email AND same building within 7 days -> same household re-submitting
   with edited answers

A different email for the same apartment inside 7 days is NOT a duplicate.
The windows are intentionally asymmetric; keep both.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from ..models.db_models import SubmissionDB
from ..time_utils import utcnow

FINGERPRINT_WINDOW = timedelta(hours=24)
IDENTITY_WINDOW = timedelta(days=7)


class DuplicateKind(str, Enum):
    EXACT = "exact"
    IDENTITY_WINDOW = "identity-window"


@dataclass(frozen=True)
class DuplicateVerdict:
    """Transient result of a duplicate check. Never stored."""
    kind: DuplicateKind
    record_id: int
    created_at: datetime


class DuplicateDetector:
    """
    Looks up prior responses that collide with a new submission.

    Usage:
        detector = DuplicateDetector(db)
        verdict = detector.check(fingerprint, email, building)
    """

    def __init__(
        self,
        db: Session,
        fingerprint_window: timedelta = FINGERPRINT_WINDOW,
        identity_window: timedelta = IDENTITY_WINDOW,
    ):
        self.db = db
        self.fingerprint_window = fingerprint_window
        self.identity_window = identity_window

    def check(
        self,
        fingerprint: str,
        email: Optional[str],
        building: str,
        now: Optional[datetime] = None,
    ) -> Optional[DuplicateVerdict]:
        """Return a verdict if the submission must be rejected, else None."""
        now = now or utcnow()

        exact = self.db.query(SubmissionDB.id, SubmissionDB.created_at).filter(
            SubmissionDB.submission_hash == fingerprint,
            SubmissionDB.created_at > now - self.fingerprint_window,
        ).order_by(SubmissionDB.created_at.desc()).first()

        if exact:
            return DuplicateVerdict(DuplicateKind.EXACT, exact.id, exact.created_at)

        if not email:
            return None

        same_identity = self.db.query(SubmissionDB.id, SubmissionDB.created_at).filter(
            SubmissionDB.email == email.strip().lower(),
            SubmissionDB.building == building,
            SubmissionDB.created_at > now - self.identity_window,
        ).order_by(SubmissionDB.created_at.desc()).first()

        if same_identity:
            return DuplicateVerdict(
                DuplicateKind.IDENTITY_WINDOW,
                same_identity.id,
                same_identity.created_at,
            )

        return None
