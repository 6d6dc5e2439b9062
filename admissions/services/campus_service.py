"""Admissions Analytics — Campus Service."""

from typing import List, Optional

from sqlalchemy import String, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from admissions.config import settings
from admissions.connectors.query_engine import (
    QueryExecutionError,
    execute_query,
    safe_identifier,
)
from admissions.core.logging import get_logger
from admissions.core.lookup_cache import LookupCache, make_key
from admissions.models.campus_models import Campus, CampusOption

logger = get_logger("services.campus")


class CampusService:
    """Campus lists for the dashboard filter."""

    def __init__(
        self,
        session: Session,
        cache: LookupCache,
        schema: Optional[str] = None,
    ):
        self.session = session
        self.cache = cache
        self.schema = safe_identifier(schema or settings.metrics_schema)

    def list_campuses(self) -> List[Campus]:
        """All managed campuses, ordered by name."""
        try:
            return list(
                self.session.exec(select(Campus).order_by(Campus.campus_name)).all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching campuses: {e}")
            raise QueryExecutionError(f"SQL query error: {e}", "campuses") from e

    def list_active_campuses(self, school_year: Optional[str] = None) -> List[CampusOption]:
        """Campuses with at least one closed won opportunity for the school year.

        Cached per school year; the campus name doubles as its filter id.
        """
        school_year = school_year or settings.school_year
        key = make_key("active_campuses", school_year)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        clause = text(
            "SELECT DISTINCT o.preferred_campus_c AS campus_name "
            f"FROM {self.schema}.opportunity o "
            "WHERE o.preferred_campus_c IS NOT NULL "
            "AND o.is_closed = true "
            "AND o.is_won = true "
            "AND o.school_year_c = :school_year "
            "ORDER BY o.preferred_campus_c"
        ).bindparams(bindparam("school_year", type_=String))

        rows = execute_query(
            self.session, clause, {"school_year": school_year}, query_name="active_campuses"
        )
        campuses = [
            CampusOption(campus_id=r["campus_name"], campus_name=r["campus_name"])
            for r in rows
            if r.get("campus_name")
        ]
        self.cache.set(key, campuses)
        logger.info(f"Loaded {len(campuses)} active campuses for {school_year}")
        return campuses

    def refresh(self, school_year: Optional[str] = None) -> List[CampusOption]:
        """Drop the cached list and reload it."""
        self.cache.pop(make_key("active_campuses", school_year or settings.school_year))
        return self.list_active_campuses(school_year)
