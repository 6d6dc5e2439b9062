"""Admissions Analytics — Shared route dependencies.

Caches and the edge function client are created once in the app lifespan
and stored on ``app.state``.
"""

from fastapi import Depends, Request
from sqlmodel import Session

from admissions.connectors.edge_functions import EdgeFunctionClient
from admissions.core.lookup_cache import LookupCache
from admissions.database import get_session
from admissions.services.campus_service import CampusService
from admissions.services.census_service import CensusService
from admissions.services.enrollment_service import EnrollmentService
from admissions.services.metrics_service import MetricsService


def get_metrics_service(session: Session = Depends(get_session)) -> MetricsService:
    return MetricsService(session)


def get_enrollment_service(session: Session = Depends(get_session)) -> EnrollmentService:
    return EnrollmentService(session)


def get_campus_service(
    request: Request, session: Session = Depends(get_session)
) -> CampusService:
    cache: LookupCache = request.app.state.campus_cache
    return CampusService(session, cache)


def get_census_service(request: Request) -> CensusService:
    client: EdgeFunctionClient = request.app.state.edge_client
    cache: LookupCache = request.app.state.lookup_cache
    return CensusService(client, cache)
