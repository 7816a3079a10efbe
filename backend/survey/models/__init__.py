"""IRVE Survey - Data Models"""
from .db_models import (
    # Enums
    AuditEventType, OccupancyStatus, EvOwnership, InterestLevel, PreferredSolution, Timeline,
    # Tables
    SubmissionDB, AuditLogDB,
    AuditLogImmutableError,
)

__all__ = [
    "AuditEventType", "OccupancyStatus", "EvOwnership", "InterestLevel", "PreferredSolution", "Timeline",
    "SubmissionDB", "AuditLogDB",
    "AuditLogImmutableError",
]
