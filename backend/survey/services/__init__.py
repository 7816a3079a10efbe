"""
IRVE Survey Services

Submission integrity and compliance engine:
- fingerprint / DuplicateDetector: duplicate suppression
- AuditTrailService: append-only audit log
- SessionTokenStore: in-memory admin sessions
- RateLimiter: tiered fixed-window throttling
- RetentionService: horizon-based purge
- SubjectRightsService: RGPD access / erasure / consent withdrawal
"""

from .fingerprint import generate_submission_fingerprint
from .duplicate_detector import DuplicateDetector, DuplicateVerdict, DuplicateKind
from .audit_trail import AuditTrailService, redact_email
from .session_store import SessionTokenStore, SessionToken
from .rate_limiter import RateLimiter, RateLimitTier, RateLimitDecision, build_tiers
from .retention import RetentionService, RetentionResult, run_retention_sweep
from .subject_rights import SubjectRightsService, SubjectRequestType, SubjectNotFoundError
from .submission_service import SubmissionService, SubmissionData, DuplicateSubmissionError
from .statistics import StatisticsService
from .background import PeriodicJob, build_maintenance_jobs

__all__ = [
    'generate_submission_fingerprint',
    'DuplicateDetector',
    'DuplicateVerdict',
    'DuplicateKind',
    'AuditTrailService',
    'redact_email',
    'SessionTokenStore',
    'SessionToken',
    'RateLimiter',
    'RateLimitTier',
    'RateLimitDecision',
    'build_tiers',
    'RetentionService',
    'RetentionResult',
    'run_retention_sweep',
    'SubjectRightsService',
    'SubjectRequestType',
    'SubjectNotFoundError',
    'SubmissionService',
    'SubmissionData',
    'DuplicateSubmissionError',
    'StatisticsService',
    'PeriodicJob',
    'build_maintenance_jobs',
]
