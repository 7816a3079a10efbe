"""
IRVE Survey - Submission Router
Public survey intake: rate limit -> validation -> duplicate check -> insert
"""
from datetime import datetime, timezone
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from ..auth import get_client_ip
from ..config import get_settings
from ..database import get_db
from ..dependencies import enforce_rate_limit
from ..errors import DuplicateError
from ..models.db_models import (
    OccupancyStatus, EvOwnership, InterestLevel, PreferredSolution, Timeline,
)
from ..services.rate_limiter import SURVEY_TIER
from ..services.submission_service import (
    SubmissionService, SubmissionData, DuplicateSubmissionError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/survey", tags=["survey"])

DUPLICATE_MESSAGE = (
    "Une réponse similaire a déjà été enregistrée. Si vous souhaitez modifier votre réponse, "
    "veuillez contacter le conseil syndical."
)


def _choices(enum_cls) -> list:
    return [member.value for member in enum_cls]


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class SurveySubmissionRequest(BaseModel):
    building: str
    apartment: Optional[str] = Field(default=None, max_length=20)
    parking_spot: Optional[str] = Field(default=None, max_length=20)
    status: str
    has_ev: str
    interested: str
    preferred_solution: Optional[str] = None
    timeline: Optional[str] = None
    comments: Optional[str] = Field(default=None, max_length=1000)
    email: Optional[EmailStr] = None
    consent_contact: bool = False
    consent_timestamp: Optional[datetime] = None

    @field_validator(
        'building', 'apartment', 'parking_spot', 'status', 'has_ev', 'interested',
        'preferred_solution', 'timeline', 'comments', 'email',
        mode='before',
    )
    @classmethod
    def strip_strings(cls, v, info):
        if isinstance(v, str):
            v = v.strip()
            # optional selects and email arrive as "" when left empty
            if v == "" and info.field_name in ('email', 'preferred_solution', 'timeline'):
                return None
        return v

    @field_validator('building')
    @classmethod
    def validate_building(cls, v):
        if not v:
            raise ValueError('Le bâtiment est requis')
        if v not in get_settings().buildings:
            raise ValueError('Bâtiment invalide')
        return v

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        if v not in _choices(OccupancyStatus):
            raise ValueError('Statut invalide')
        return v

    @field_validator('has_ev')
    @classmethod
    def validate_has_ev(cls, v):
        if v not in _choices(EvOwnership):
            raise ValueError('Valeur invalide pour véhicule électrique')
        return v

    @field_validator('interested')
    @classmethod
    def validate_interested(cls, v):
        if v not in _choices(InterestLevel):
            raise ValueError('Valeur invalide pour intérêt')
        return v

    @field_validator('preferred_solution')
    @classmethod
    def validate_preferred_solution(cls, v):
        if v is not None and v not in _choices(PreferredSolution):
            raise ValueError('Solution invalide')
        return v

    @field_validator('timeline')
    @classmethod
    def validate_timeline(cls, v):
        if v is not None and v not in _choices(Timeline):
            raise ValueError('Délai invalide')
        return v

    @field_validator('consent_timestamp')
    @classmethod
    def to_naive_utc(cls, v):
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class SubmissionResponse(BaseModel):
    success: bool = True
    message: str
    id: int


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post(
    "",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit(SURVEY_TIER))],
)
def submit_survey(
    payload: SurveySubmissionRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Submit a survey response.
    Returns 409 with error "duplicate" when the same household already answered.
    """
    data = SubmissionData(**payload.model_dump())

    try:
        response = SubmissionService(db).submit(
            data,
            client_ip=get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except DuplicateSubmissionError:
        raise DuplicateError(DUPLICATE_MESSAGE)

    logger.info(f"Survey response {response.id} recorded for building {response.building}")
    return SubmissionResponse(
        message="Votre réponse a été enregistrée. Merci de votre participation !",
        id=response.id,
    )
