"""
IRVE Survey - Statistics Router
Public anonymous statistics and the admin CSV export
"""
from typing import Dict
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_client_ip, require_admin
from ..config import Settings
from ..database import get_db
from ..dependencies import get_app_settings
from ..models.db_models import AuditEventType
from ..services.audit_trail import AuditTrailService
from ..services.session_store import SessionToken
from ..services.statistics import StatisticsService
from ..time_utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


class StatsResponse(BaseModel):
    total_responses: int
    total_lots: int
    participation_rate: float
    by_status: Dict[str, int]
    by_building: Dict[str, int]
    has_ev: Dict[str, int]
    interest: Dict[str, int]
    preferred_solution: Dict[str, int]
    timeline: Dict[str, int]
    with_parking: int
    with_comments: int
    with_consent: int


@router.get("", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Aggregated anonymous statistics."""
    return StatsResponse(**StatisticsService(db).public_stats(settings.total_lots))


@router.get("/export")
def export_csv(
    request: Request,
    db: Session = Depends(get_db),
    _: SessionToken = Depends(require_admin),
):
    """All responses as CSV (admin only)."""
    csv_body, record_count = StatisticsService(db).export_csv()

    AuditTrailService(db).record(AuditEventType.EXPORT, get_client_ip(request), {
        "record_count": record_count,
    })

    filename = f"enquete-irve-{utcnow().date().isoformat()}.csv"
    return Response(
        content=csv_body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
