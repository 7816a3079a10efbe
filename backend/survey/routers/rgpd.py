"""
IRVE Survey - RGPD Router
Data-subject rights: public intake plus admin-only fulfillment.

The public endpoint never reveals whether an email is known; the admin
handles the request out of band with the authenticated endpoints.
"""
from typing import Any, Dict, List
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.orm import Session

from ..auth import get_client_ip, require_admin
from ..database import get_db
from ..dependencies import enforce_rate_limit
from ..errors import NotFoundError
from ..services.rate_limiter import RGPD_TIER
from ..services.session_store import SessionToken
from ..services.subject_rights import (
    SubjectRightsService, SubjectRequestType, SubjectNotFoundError,
)
from ..time_utils import isoformat, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats/rgpd", tags=["rgpd"])

NOT_FOUND_MESSAGE = "Aucune donnée trouvée pour cet email"


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class SubjectRequest(BaseModel):
    email: EmailStr
    type: SubjectRequestType

    @field_validator('email', mode='before')
    @classmethod
    def strip_email(cls, v):
        return v.strip() if isinstance(v, str) else v


class ConsentWithdrawalRequest(BaseModel):
    email: EmailStr

    @field_validator('email', mode='before')
    @classmethod
    def strip_email(cls, v):
        return v.strip() if isinstance(v, str) else v


class AcknowledgementResponse(BaseModel):
    success: bool = True
    message: str


class ExportResponse(BaseModel):
    success: bool = True
    data: List[Dict[str, Any]]
    exported_at: str


class DeleteResponse(BaseModel):
    success: bool = True
    message: str
    records_deleted: int


class ConsentWithdrawalResponse(BaseModel):
    success: bool = True
    message: str
    records_updated: int


# =============================================================================
# PUBLIC INTAKE
# =============================================================================

@router.post(
    "/request",
    response_model=AcknowledgementResponse,
    dependencies=[Depends(enforce_rate_limit(RGPD_TIER))],
)
def request_subject_rights(
    body: SubjectRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Register an access or deletion request. Returns no personal data."""
    receipt = SubjectRightsService(db).register_request(
        email=body.email,
        request_type=body.type,
        client_ip=get_client_ip(request),
    )
    return AcknowledgementResponse(message=receipt.message)


# =============================================================================
# ADMIN FULFILLMENT
# =============================================================================

@router.get("/export/{email}", response_model=ExportResponse)
def export_subject_data(
    email: str,
    request: Request,
    db: Session = Depends(get_db),
    _: SessionToken = Depends(require_admin),
):
    """Every stored field for this email."""
    try:
        records = SubjectRightsService(db).export_records(email, get_client_ip(request))
    except SubjectNotFoundError:
        raise NotFoundError(NOT_FOUND_MESSAGE)

    return ExportResponse(data=records, exported_at=isoformat(utcnow()))


@router.delete("/delete/{email}", response_model=DeleteResponse)
def delete_subject_data(
    email: str,
    request: Request,
    db: Session = Depends(get_db),
    _: SessionToken = Depends(require_admin),
):
    """Erase every response for this email."""
    try:
        deleted = SubjectRightsService(db).delete_records(email, get_client_ip(request))
    except SubjectNotFoundError:
        raise NotFoundError(NOT_FOUND_MESSAGE)

    return DeleteResponse(message="Vos données ont été supprimées", records_deleted=deleted)


@router.post("/withdraw-consent", response_model=ConsentWithdrawalResponse)
def withdraw_consent(
    body: ConsentWithdrawalRequest,
    request: Request,
    db: Session = Depends(get_db),
    _: SessionToken = Depends(require_admin),
):
    """Drop contact consent and the email address. Irreversible."""
    try:
        updated = SubjectRightsService(db).withdraw_consent(body.email, get_client_ip(request))
    except SubjectNotFoundError:
        raise NotFoundError(NOT_FOUND_MESSAGE)

    return ConsentWithdrawalResponse(
        message="Votre consentement a été retiré et votre email supprimé",
        records_updated=updated,
    )
