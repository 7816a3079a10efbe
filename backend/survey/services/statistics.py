"""
Statistics & Export

Read-only rollups over the responses table:
- anonymous public statistics
- duplicate review groups (email + building seen more than once)
- CSV export for the residents' council
"""
import csv
import io
from typing import Any, Dict, List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.db_models import SubmissionDB
from ..time_utils import isoformat

UTF8_BOM = "\ufeff"

CSV_HEADERS = [
    "ID",
    "Date",
    "Bâtiment",
    "Appartement",
    "Place parking",
    "Statut",
    "Véhicule électrique",
    "Intéressé",
    "Solution préférée",
    "Horizon",
    "Commentaires",
    "Email",
    "Consentement contact",
]


def _not_blank(column):
    return (column.isnot(None)) & (column != "")


class StatisticsService:
    def __init__(self, db: Session):
        self.db = db

    def _group_counts(self, column, only_filled: bool = False) -> Dict[str, int]:
        query = self.db.query(column, func.count(SubmissionDB.id))
        if only_filled:
            query = query.filter(_not_blank(column))
        return {value: count for value, count in query.group_by(column).all()}

    def _count(self, *criteria) -> int:
        return self.db.query(func.count(SubmissionDB.id)).filter(*criteria).scalar() or 0

    def public_stats(self, total_lots: int) -> Dict[str, Any]:
        """Aggregated, anonymous figures. No row-level data."""
        total = self.db.query(func.count(SubmissionDB.id)).scalar() or 0
        participation = round((total / total_lots) * 100, 1) if total_lots > 0 else 0.0

        return {
            "total_responses": total,
            "total_lots": total_lots,
            "participation_rate": participation,
            "by_status": self._group_counts(SubmissionDB.status),
            "by_building": self._group_counts(SubmissionDB.building),
            "has_ev": self._group_counts(SubmissionDB.has_ev),
            "interest": self._group_counts(SubmissionDB.interested),
            "preferred_solution": self._group_counts(SubmissionDB.preferred_solution, only_filled=True),
            "timeline": self._group_counts(SubmissionDB.timeline, only_filled=True),
            "with_parking": self._count(_not_blank(SubmissionDB.parking_spot)),
            "with_comments": self._count(_not_blank(SubmissionDB.comments)),
            "with_consent": self._count(
                SubmissionDB.consent_contact.is_(True), _not_blank(SubmissionDB.email)
            ),
        }

    def duplicate_groups(self) -> List[Dict[str, Any]]:
        """Email + building pairs with more than one response, biggest first."""
        groups = self.db.query(
            SubmissionDB.email,
            SubmissionDB.building,
            func.count(SubmissionDB.id).label("count"),
            func.min(SubmissionDB.created_at).label("first_submission"),
            func.max(SubmissionDB.created_at).label("last_submission"),
        ).filter(
            _not_blank(SubmissionDB.email)
        ).group_by(
            SubmissionDB.email, SubmissionDB.building
        ).having(
            func.count(SubmissionDB.id) > 1
        ).order_by(
            func.count(SubmissionDB.id).desc()
        ).all()

        result = []
        for group in groups:
            ids = [
                row.id for row in self.db.query(SubmissionDB.id).filter(
                    SubmissionDB.email == group.email,
                    SubmissionDB.building == group.building,
                ).order_by(SubmissionDB.id).all()
            ]
            result.append({
                "email": group.email,
                "building": group.building,
                "count": group.count,
                "ids": ids,
                "first_submission": isoformat(group.first_submission),
                "last_submission": isoformat(group.last_submission),
            })
        return result

    def export_csv(self) -> Tuple[str, int]:
        """CSV of every response, newest first, with a BOM for spreadsheet tools."""
        records = self.db.query(SubmissionDB).order_by(SubmissionDB.created_at.desc()).all()

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for r in records:
            writer.writerow([
                r.id,
                isoformat(r.created_at),
                r.building,
                r.apartment or "",
                r.parking_spot or "",
                r.status,
                r.has_ev,
                r.interested,
                r.preferred_solution or "",
                r.timeline or "",
                r.comments or "",
                r.email or "",
                "Oui" if r.consent_contact else "Non",
            ])

        return UTF8_BOM + buffer.getvalue(), len(records)
