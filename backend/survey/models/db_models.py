"""
IRVE Survey - SQLAlchemy ORM Models
Survey responses and the append-only audit log
"""
from enum import Enum

from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Boolean, event

from ..database import Base
from ..time_utils import utcnow


# =============================================================================
# ENUMS
# =============================================================================

class AuditEventType(str, Enum):
    """Every event the audit trail records."""
    SUBMISSION = "submission"
    DUPLICATE_ATTEMPT = "duplicate_attempt"
    LOGIN = "login"
    LOGOUT = "logout"
    ACCESS_DENIED = "access_denied"
    AUDIT_VIEW = "audit_view"
    DUPLICATES_VIEW = "duplicates_view"
    EXPORT = "export"
    MANUAL_CLEANUP = "manual_cleanup"
    AUTO_CLEANUP = "auto_cleanup"
    RGPD_REQUEST = "rgpd_request"
    RGPD_EXPORT = "rgpd_export"
    RGPD_DELETE = "rgpd_delete"
    CONSENT_WITHDRAWN = "consent_withdrawn"


class OccupancyStatus(str, Enum):
    OWNER = "proprietaire"
    TENANT = "locataire"


class EvOwnership(str, Enum):
    YES = "oui"
    NO = "non"
    PLANNED = "projet"


class InterestLevel(str, Enum):
    YES = "oui"
    MAYBE = "peut-etre"
    NO = "non"


class PreferredSolution(str, Enum):
    """Charging infrastructure options offered to residents."""
    ENEDIS = "enedis"
    OPERATOR = "operateur"
    INDIVIDUAL = "individuelle"
    NO_OPINION = "sans_avis"


class Timeline(str, Enum):
    SIX_MONTHS = "6mois"
    ONE_YEAR = "1an"
    TWO_YEARS = "2ans"
    LATER = "plus"


# =============================================================================
# SURVEY RESPONSES
# =============================================================================

class SubmissionDB(Base):
    """
    One survey response.

    Invariants:
    - consent_contact is False => email is NULL
    - submission_hash is always set at insert time
    """
    __tablename__ = "responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # Identification
    building = Column(String(20), nullable=False, index=True)
    apartment = Column(String(20), nullable=True)
    parking_spot = Column(String(20), nullable=True)
    status = Column(String(20), nullable=False)

    # Current situation / interest
    has_ev = Column(String(20), nullable=False)
    interested = Column(String(20), nullable=False)
    preferred_solution = Column(String(20), nullable=True)
    timeline = Column(String(20), nullable=True)
    comments = Column(Text, nullable=True)

    # Contact (optional, consent-gated)
    email = Column(String(255), nullable=True, index=True)
    consent_contact = Column(Boolean, default=False, nullable=False)
    consent_timestamp = Column(DateTime, nullable=True)

    # Provenance
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    submission_hash = Column(String(64), nullable=False, index=True)

    def to_export_dict(self) -> dict:
        """All personal fields, for subject access requests."""
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "building": self.building,
            "apartment": self.apartment,
            "parking_spot": self.parking_spot,
            "status": self.status,
            "has_ev": self.has_ev,
            "interested": self.interested,
            "preferred_solution": self.preferred_solution,
            "timeline": self.timeline,
            "comments": self.comments,
            "email": self.email,
            "consent_contact": bool(self.consent_contact),
            "consent_timestamp": self.consent_timestamp.isoformat() if self.consent_timestamp else None,
        }


# =============================================================================
# AUDIT LOG (APPEND-ONLY)
# =============================================================================

class AuditLogImmutableError(RuntimeError):
    """Raised when code tries to modify or delete an audit entry."""


class AuditLogDB(Base):
    """
    Append-only audit fact.
    Retained independently of the responses it describes.
    """
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    event_type = Column(String(50), nullable=False, index=True)
    ip_address = Column(String(64), nullable=True)
    details = Column(JSON, nullable=False, default=dict)


@event.listens_for(AuditLogDB, "before_update")
def _reject_audit_update(mapper, connection, target):
    raise AuditLogImmutableError(f"audit entry {target.id} cannot be updated")


@event.listens_for(AuditLogDB, "before_delete")
def _reject_audit_delete(mapper, connection, target):
    raise AuditLogImmutableError(f"audit entry {target.id} cannot be deleted")
