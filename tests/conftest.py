"""
tests/conftest.py

Shared fixtures. The metrics views are stood up in an in-memory SQLite
database attached under the ``fivetran_views`` schema name, so the exact
SQL the services send to Postgres runs unchanged.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Iterator  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import event, text  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from admissions.models.campus_models import Campus  # noqa: E402
from admissions.models.metrics_models import RawMetricRow  # noqa: E402

LEAD_ROWS = [
    ("month", "2024-01-01", "Jan 2024", "Atlanta", 60),
    ("month", "2024-01-01", "Jan 2024", "Miami", 40),
    ("month", "2024-02-01", "Feb 2024", "Atlanta", 90),
    ("month", "2024-02-01", "Feb 2024", "Miami", 60),
    ("month", "2023-12-01", "Dec 2023", "Atlanta", 25),
    ("month", "2022-06-01", "Jun 2022", "Atlanta", 999),
]

OPPORTUNITY_ROWS = [
    ("Miami", 1, 1, "25/26"),
    ("Atlanta", 1, 1, "25/26"),
    ("Atlanta", 1, 1, "25/26"),
    ("Chicago", 1, 0, "25/26"),
    ("Birmingham", 1, 1, "24/25"),
    (None, 1, 1, "25/26"),
]

ARR_WEEKLY_ROWS = [
    ("week", "2023-11-27", "Nov 27, 2023", "Miami", 100.0),
    ("week", "2024-01-01", "Jan 01, 2024", "Miami", 200.0),
    ("week", "2024-01-01", "Jan 01, 2024", "Atlanta", 50.0),
    ("week", "2024-01-08", "Jan 08, 2024", "Miami", 300.0),
]

GRADE_ROWS = [
    ("K", "Atlanta", 10),
    ("1", "Atlanta", 12),
    ("4", "Atlanta", 8),
    ("7", "Atlanta", 5),
    ("tk", "Miami", 3),
    ("2", "Miami", 4),
    ("6", "Miami", 6),
    ("9", "Miami", 20),
]


def make_row(
    period_date: str,
    campus: str = "All Campuses",
    count: float = 0,
    formatted_date: str = "",
    period_type: str = "week",
) -> RawMetricRow:
    return RawMetricRow(
        period_type=period_type,
        period_date=period_date,
        formatted_date=formatted_date,
        campus_name=campus,
        count=count,
    )


@pytest.fixture()
def view_engine() -> Engine:
    """In-memory database with the metrics views populated."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _attach_views_schema(dbapi_connection, _record) -> None:
        dbapi_connection.execute("ATTACH DATABASE ':memory:' AS fivetran_views")

    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE fivetran_views.lead_metrics_monthly ("
                "period_type TEXT, period_date TEXT, formatted_date TEXT, "
                "campus_name TEXT, lead_count REAL)"
            )
        )
        conn.execute(
            text(
                "INSERT INTO fivetran_views.lead_metrics_monthly VALUES "
                "(:pt, :pd, :fd, :cn, :c)"
            ),
            [dict(pt=r[0], pd=r[1], fd=r[2], cn=r[3], c=r[4]) for r in LEAD_ROWS],
        )
        conn.execute(
            text(
                "CREATE TABLE fivetran_views.opportunity ("
                "preferred_campus_c TEXT, is_closed BOOLEAN, is_won BOOLEAN, "
                "school_year_c TEXT)"
            )
        )
        conn.execute(
            text("INSERT INTO fivetran_views.opportunity VALUES (:c, :closed, :won, :sy)"),
            [dict(c=r[0], closed=r[1], won=r[2], sy=r[3]) for r in OPPORTUNITY_ROWS],
        )
        conn.execute(
            text(
                "CREATE TABLE fivetran_views.grade_enrollment_summary ("
                "grade TEXT, campus TEXT, enrollment_count INTEGER)"
            )
        )
        conn.execute(
            text(
                "INSERT INTO fivetran_views.grade_enrollment_summary "
                "VALUES (:g, :c, :n)"
            ),
            [dict(g=r[0], c=r[1], n=r[2]) for r in GRADE_ROWS],
        )

    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        session.add(Campus(campus_id="MIA", campus_name="Miami"))
        session.add(Campus(campus_id="ATL", campus_name="Atlanta"))
        session.commit()
    return engine


@pytest.fixture()
def session(view_engine: Engine) -> Iterator[Session]:
    with Session(view_engine) as s:
        yield s


@pytest.fixture()
def arr_weekly(view_engine: Engine) -> Engine:
    """Adds the weekly ARR view; cumulative ARR is read from it."""
    with view_engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE fivetran_views.arr_metrics_weekly ("
                "period_type TEXT, period_date TEXT, formatted_date TEXT, "
                "campus_name TEXT, arr_amount REAL)"
            )
        )
        conn.execute(
            text(
                "INSERT INTO fivetran_views.arr_metrics_weekly VALUES "
                "(:pt, :pd, :fd, :cn, :a)"
            ),
            [dict(pt=r[0], pd=r[1], fd=r[2], cn=r[3], a=r[4]) for r in ARR_WEEKLY_ROWS],
        )
    return view_engine
