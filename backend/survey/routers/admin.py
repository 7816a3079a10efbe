"""
IRVE Survey - Admin Router
Admin login/logout, audit log review, duplicate review and manual cleanup.
Every admin action is itself audit-logged.
"""
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import (
    AdminCredentials, get_admin_credentials, get_client_ip, get_session_store, require_admin,
)
from ..config import Settings
from ..database import get_db
from ..dependencies import get_app_settings, get_rate_limiter
from ..errors import ApiError, AuthenticationError, RateLimitExceeded
from ..models.db_models import AuditEventType
from ..services.audit_trail import AuditTrailService, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..services.rate_limiter import AUTH_TIER, RateLimiter
from ..services.retention import RetentionService
from ..services.session_store import SessionToken, SessionTokenStore
from ..services.statistics import StatisticsService
from ..time_utils import isoformat

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["admin"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class LoginRequest(BaseModel):
    password: Optional[str] = None


class TokenResponse(BaseModel):
    success: bool = True
    token: str
    expires_at: str
    expires_in: int


class SuccessResponse(BaseModel):
    success: bool = True


class AuditEntry(BaseModel):
    id: int
    created_at: str
    event_type: str
    ip_address: Optional[str] = None
    details: Dict[str, Any]


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int


class AuditLogResponse(BaseModel):
    success: bool = True
    logs: List[AuditEntry]
    pagination: Pagination


class DuplicateGroup(BaseModel):
    email: str
    building: str
    count: int
    ids: List[int]
    first_submission: Optional[str] = None
    last_submission: Optional[str] = None


class DuplicatesResponse(BaseModel):
    success: bool = True
    duplicates: List[DuplicateGroup]


class CleanupResponse(BaseModel):
    success: bool = True
    deleted_count: int
    retention_days: int
    cutoff: str


# =============================================================================
# SESSION ENDPOINTS
# =============================================================================

@router.post("/auth", response_model=TokenResponse)
def login(
    body: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    credentials: AdminCredentials = Depends(get_admin_credentials),
    store: SessionTokenStore = Depends(get_session_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    Exchange the admin password for a session token.
    Only failed attempts count against the auth rate limit.
    """
    client_ip = get_client_ip(request)

    decision = limiter.check(AUTH_TIER, client_ip)
    if not decision.allowed:
        raise RateLimitExceeded(decision)

    if not body.password:
        raise ApiError("Mot de passe requis")

    audit = AuditTrailService(db)

    if not credentials.verify(body.password):
        limiter.hit(AUTH_TIER, client_ip)
        audit.record(AuditEventType.LOGIN, client_ip, {"success": False})
        logger.warning(f"Failed admin login from {client_ip}")
        raise AuthenticationError("Mot de passe incorrect")

    session = store.issue(client_ip)
    audit.record(AuditEventType.LOGIN, client_ip, {"success": True})
    logger.info(f"Admin session opened from {client_ip}")

    return TokenResponse(
        token=session.token,
        expires_at=isoformat(session.expires_at),
        expires_in=session.expires_in,
    )


@router.post("/logout", response_model=SuccessResponse)
def logout(
    request: Request,
    session: SessionToken = Depends(require_admin),
    store: SessionTokenStore = Depends(get_session_store),
    db: Session = Depends(get_db),
):
    """Revoke the caller's session token."""
    store.revoke(session.token)
    AuditTrailService(db).record(AuditEventType.LOGOUT, get_client_ip(request), {})
    return SuccessResponse()


# =============================================================================
# ADMIN TOOLING
# =============================================================================

@router.get("/admin/audit", response_model=AuditLogResponse)
def view_audit_log(
    request: Request,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    offset: int = Query(0, ge=0),
    event_type: Optional[AuditEventType] = None,
    db: Session = Depends(get_db),
    _: SessionToken = Depends(require_admin),
):
    """Paginated audit log, newest first. limit is capped at 500."""
    limit = min(limit, MAX_PAGE_SIZE)
    audit = AuditTrailService(db)

    entries = audit.list_entries(limit=limit, offset=offset, event_type=event_type)
    total = audit.count(event_type)

    # Recorded after the read so a page never contains its own view event
    audit.record(AuditEventType.AUDIT_VIEW, get_client_ip(request), {
        "limit": limit,
        "offset": offset,
        "event_type": event_type.value if event_type else None,
    })

    return AuditLogResponse(
        logs=[
            AuditEntry(
                id=e.id,
                created_at=isoformat(e.created_at),
                event_type=e.event_type,
                ip_address=e.ip_address,
                details=e.details or {},
            )
            for e in entries
        ],
        pagination=Pagination(limit=limit, offset=offset, total=total),
    )


@router.get("/admin/duplicates", response_model=DuplicatesResponse)
def view_duplicates(
    request: Request,
    db: Session = Depends(get_db),
    _: SessionToken = Depends(require_admin),
):
    """Email + building pairs that answered more than once."""
    groups = StatisticsService(db).duplicate_groups()

    AuditTrailService(db).record(AuditEventType.DUPLICATES_VIEW, get_client_ip(request), {
        "duplicate_groups": len(groups),
    })

    return DuplicatesResponse(duplicates=[DuplicateGroup(**g) for g in groups])


@router.delete("/admin/cleanup", response_model=CleanupResponse)
def manual_cleanup(
    request: Request,
    days: Optional[int] = Query(None, ge=1, le=36500),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    _: SessionToken = Depends(require_admin),
):
    """Run the retention purge now with an arbitrary horizon (days)."""
    result = RetentionService(db).purge_older_than(
        retention_days=days or settings.retention_days,
        client_ip=get_client_ip(request),
        event_type=AuditEventType.MANUAL_CLEANUP,
    )
    return CleanupResponse(
        deleted_count=result.deleted_count,
        retention_days=result.retention_days,
        cutoff=isoformat(result.cutoff),
    )
