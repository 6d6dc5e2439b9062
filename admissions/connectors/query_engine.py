"""Admissions Analytics — Metrics View Query Engine.

Composes and runs read queries against the pre-aggregated metrics views,
then normalizes each row into a RawMetricRow.

Schema, view and column names come from configuration and the metric
registry and are checked as plain identifiers. Every user-supplied value
(campus filter, window start) is a bound parameter.
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import Date, String, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause
from sqlmodel import Session

from admissions.config import settings
from admissions.core.logging import get_logger, timed
from admissions.core.metric_registry import MetricDefinition, UnsupportedPeriodError
from admissions.metrics.periods import PeriodType, lookback_start, view_suffix
from admissions.models.metrics_models import ALL_CAMPUSES, RawMetricRow

logger = get_logger("connectors.query_engine")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class QueryExecutionError(Exception):
    """Raised when the database rejects or fails a query."""

    def __init__(self, message: str, query_name: str = ""):
        self.query_name = query_name
        super().__init__(message)


def safe_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def build_metrics_query(
    metric: MetricDefinition,
    period: PeriodType,
    lookback_units: int,
    campus: Optional[str] = None,
    schema: Optional[str] = None,
    today: Optional[date] = None,
) -> Tuple[TextClause, Dict[str, Any]]:
    """Build the SELECT for one metric view and its bound parameters.

    Cumulative metrics take a per-campus running sum over the whole view
    before the window filter, so the first period in the window already
    carries the balance built up before it.
    """
    if not metric.supports(period):
        raise UnsupportedPeriodError(metric, period)
    schema = safe_identifier(schema or settings.metrics_schema)
    view = safe_identifier(metric.view_name(view_suffix(period)))
    count_field = safe_identifier(metric.count_field)

    params: Dict[str, Any] = {
        "start_date": lookback_start(period, lookback_units, today)
    }
    binds = [bindparam("start_date", type_=Date)]
    campus_filter = ""
    if campus is not None:
        campus_filter = "campus_name = :campus"
        params["campus"] = campus
        binds.append(bindparam("campus", type_=String))

    if metric.cumulative:
        sql = (
            "SELECT * FROM ("
            "SELECT period_type, period_date, formatted_date, campus_name, "
            f"SUM({count_field}) OVER ("
            "PARTITION BY campus_name ORDER BY period_date) AS count "
            f"FROM {schema}.{view}"
            + (f" WHERE {campus_filter}" if campus_filter else "")
            + ") AS running WHERE period_date >= :start_date"
        )
    else:
        sql = (
            "SELECT period_type, period_date, formatted_date, campus_name, "
            f"{count_field} AS count "
            f"FROM {schema}.{view} "
            "WHERE period_date >= :start_date"
            + (f" AND {campus_filter}" if campus_filter else "")
        )

    sql += " ORDER BY period_date DESC"
    return text(sql).bindparams(*binds), params


def execute_query(
    session: Session,
    clause: TextClause,
    params: Optional[Dict[str, Any]] = None,
    query_name: str = "query",
) -> List[Dict[str, Any]]:
    """Run a read query and return its rows as plain dicts."""
    try:
        with timed(logger, f"Query '{query_name}' finished", query=query_name) as log_fields:
            result = session.exec(clause, params=params or {})  # type: ignore[call-overload]
            rows = [dict(r) for r in result.mappings().all()]
            log_fields["row_count"] = len(rows)
    except SQLAlchemyError as e:
        logger.error(f"Query '{query_name}' failed: {e}", extra={"query": query_name})
        raise QueryExecutionError(f"SQL query error: {e}", query_name) from e
    return rows


# ── Normalization ──


def _coerce_count(value: Any) -> float:
    """Numeric parse of a measure; 0 for anything missing or non-numeric."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return 0.0
    return number if math.isfinite(number) else 0.0


def _period_key(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return "" if value is None else str(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def normalize_metric_row(raw: Mapping[str, Any], period: PeriodType) -> RawMetricRow:
    """Fill defaults so the aggregator never sees a partial row."""
    return RawMetricRow(
        period_type=_text(raw.get("period_type")) or PeriodType(period).value,
        period_date=_period_key(raw.get("period_date")),
        formatted_date=_text(raw.get("formatted_date")),
        campus_name=_text(raw.get("campus_name")) or ALL_CAMPUSES,
        count=_coerce_count(raw.get("count")),
    )
