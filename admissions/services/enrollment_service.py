"""Admissions Analytics — Enrollment Service.

Groups per-grade enrollment from ``grade_enrollment_summary`` into the
three grade bands the dashboard charts.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import String, bindparam, text
from sqlmodel import Session

from admissions.config import settings
from admissions.connectors.query_engine import execute_query, safe_identifier
from admissions.core.logging import get_logger
from admissions.models.campus_models import GradeBandEnrollment

logger = get_logger("services.enrollment")

GRADE_BANDS: Dict[str, frozenset] = {
    "K-2": frozenset({"K", "TK", "0", "1", "2"}),
    "3-5": frozenset({"3", "4", "5"}),
    "6-8": frozenset({"6", "7", "8"}),
}


def grade_band_for(grade: Any) -> Optional[str]:
    """Band for a grade label (case and whitespace insensitive), else None."""
    normalized = str(grade).strip().upper()
    for band, grades in GRADE_BANDS.items():
        if normalized in grades:
            return band
    return None


def _as_int(value: Any) -> int:
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return 0


def group_grade_bands(rows: Iterable[Mapping[str, Any]]) -> List[GradeBandEnrollment]:
    """Sum enrollment per band; every band is present, in K-2, 3-5, 6-8 order."""
    counts = {band: 0 for band in GRADE_BANDS}
    for row in rows:
        band = grade_band_for(row.get("grade"))
        if band is None:
            logger.debug(f"Grade {row.get('grade')!r} not mapped to any band")
            continue
        counts[band] += _as_int(row.get("enrollment_count"))
    return [
        GradeBandEnrollment(grade_band=band, enrollment_count=count)
        for band, count in counts.items()
    ]


class EnrollmentService:
    """Enrollment figures by grade band."""

    def __init__(self, session: Session, schema: Optional[str] = None):
        self.session = session
        self.schema = safe_identifier(schema or settings.metrics_schema)

    def grade_bands(self, campus: Optional[str] = None) -> List[GradeBandEnrollment]:
        if campus:
            clause = text(
                "SELECT grade, campus, enrollment_count "
                f"FROM {self.schema}.grade_enrollment_summary "
                "WHERE campus = :campus"
            ).bindparams(bindparam("campus", type_=String))
            params = {"campus": campus}
        else:
            clause = text(
                "SELECT grade, SUM(enrollment_count) AS enrollment_count "
                f"FROM {self.schema}.grade_enrollment_summary "
                "GROUP BY grade"
            )
            params = {}

        rows = execute_query(self.session, clause, params, query_name="grade_enrollment")
        bands = group_grade_bands(rows)
        logger.info(
            f"Grade band enrollment: {', '.join(f'{b.grade_band}={b.enrollment_count}' for b in bands)}",
            extra={"campus": campus},
        )
        return bands

    def total_enrolled(self, campus: Optional[str] = None) -> int:
        """Enrolled students across all grade bands."""
        return sum(b.enrollment_count for b in self.grade_bands(campus))
