"""Admissions Analytics — Campus & Enrollment API Routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from admissions.api.dependencies import get_campus_service, get_enrollment_service
from admissions.connectors.query_engine import QueryExecutionError
from admissions.core.logging import get_logger
from admissions.models.campus_models import CampusOption, GradeBandEnrollment
from admissions.services.campus_service import CampusService
from admissions.services.enrollment_service import EnrollmentService

logger = get_logger("api.campus")

router = APIRouter(tags=["Campuses"])


@router.get("/campuses")
def list_campuses(service: CampusService = Depends(get_campus_service)):
    """Managed campuses, ordered by name."""
    try:
        campuses = service.list_campuses()
    except QueryExecutionError as e:
        logger.error(f"Failed to fetch campuses: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch campuses data")
    return {"status": "success", "count": len(campuses), "campuses": campuses}


@router.get("/campuses/active", response_model=List[CampusOption])
def list_active_campuses(
    school_year: Optional[str] = Query(None, description="e.g. 25/26"),
    service: CampusService = Depends(get_campus_service),
):
    """Campuses with closed won opportunities for the school year."""
    try:
        return service.list_active_campuses(school_year)
    except QueryExecutionError as e:
        logger.error(f"Failed to fetch active campuses: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch campuses data")


@router.post("/campuses/refresh", response_model=List[CampusOption])
def refresh_campuses(
    school_year: Optional[str] = Query(None),
    service: CampusService = Depends(get_campus_service),
):
    """Reload the active campus list, bypassing the cache."""
    try:
        return service.refresh(school_year)
    except QueryExecutionError as e:
        logger.error(f"Failed to refresh campuses: {e}")
        raise HTTPException(status_code=502, detail="Failed to refresh campuses")


@router.get("/enrollment/grade-bands", response_model=List[GradeBandEnrollment])
def get_grade_band_enrollment(
    campus: Optional[str] = Query(None),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """Enrollment grouped into K-2, 3-5 and 6-8."""
    try:
        return service.grade_bands(campus)
    except QueryExecutionError as e:
        logger.error(f"Failed to fetch grade band enrollment: {e}", extra={"campus": campus})
        raise HTTPException(
            status_code=502, detail="Failed to fetch grade band enrollment data"
        )


@router.get("/enrollment/total")
def get_total_enrolled(
    campus: Optional[str] = Query(None),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """Total enrolled students, optionally for one campus."""
    try:
        count = service.total_enrolled(campus)
    except QueryExecutionError as e:
        logger.error(f"Failed to fetch total enrollment: {e}", extra={"campus": campus})
        raise HTTPException(status_code=502, detail="Failed to fetch total enrollment")
    return {"status": "success", "campus": campus, "count": count}
