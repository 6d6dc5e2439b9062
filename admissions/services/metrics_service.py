"""Admissions Analytics — Metrics Service.

Runs the full data flow for one dashboard metric:
  resolve view → query (bound parameters) → normalize rows → aggregate

A fresh MetricsResponse is built on every call.
"""

from datetime import date
from typing import Optional

from sqlmodel import Session

from admissions.config import settings
from admissions.connectors.query_engine import (
    build_metrics_query,
    execute_query,
    normalize_metric_row,
)
from admissions.core.logging import get_logger
from admissions.core.metric_registry import get_metric
from admissions.metrics.aggregator import aggregate
from admissions.metrics.periods import PeriodType
from admissions.models.metrics_models import MetricsResponse

logger = get_logger("services.metrics")


class MetricsService:
    """Fetches and aggregates period metrics from the metrics views."""

    def __init__(
        self,
        session: Session,
        schema: Optional[str] = None,
        today: Optional[date] = None,
    ):
        self.session = session
        self.schema = schema or settings.metrics_schema
        self.today = today

    def get_metrics(
        self,
        metric_type: str,
        period: PeriodType = PeriodType.WEEK,
        lookback_units: Optional[int] = None,
        campus: Optional[str] = None,
    ) -> MetricsResponse:
        """Aggregated metrics for a metric type over the lookback window.

        Raises UnknownMetricError for an unregistered metric,
        UnsupportedPeriodError when the metric has no view at that
        granularity, ValueError for an out-of-range window, and
        QueryExecutionError when the query fails.
        """
        metric = get_metric(metric_type)
        period = PeriodType(period)
        units = settings.default_lookback_units if lookback_units is None else lookback_units
        if not 1 <= units <= settings.max_lookback_units:
            raise ValueError(
                f"lookback_units must be between 1 and {settings.max_lookback_units}"
            )
        campus = campus or None

        clause, params = build_metrics_query(
            metric, period, units, campus, schema=self.schema, today=self.today
        )
        raw_rows = execute_query(
            self.session, clause, params, query_name=f"{metric.name}_{period.value}"
        )

        rows = [normalize_metric_row(r, period) for r in raw_rows]
        if not rows:
            logger.info(
                f"No {metric.name} rows in window; returning empty response",
                extra={"metric_type": metric.name, "period": period.value, "campus": campus},
            )
            return MetricsResponse.empty(period.value, metric.name)

        response = aggregate(rows, period, metric.name, cumulative=metric.cumulative)
        logger.info(
            f"Built {metric.name} metrics: {len(response.periods)} periods, "
            f"latest total {response.latest_total}",
            extra={
                "metric_type": metric.name,
                "period": period.value,
                "campus": campus,
                "row_count": len(rows),
            },
        )
        return response
