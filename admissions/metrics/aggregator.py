"""Admissions Analytics — Metrics Aggregator.

Folds per-(period, campus) rows from a metrics view into period totals,
campus totals, period-over-period changes, and chart time series.

Rows are summed as given: two rows for the same (period, campus) both count
toward the period's cell, ``totals`` and ``campus_totals``. ``get_count``
resolves such a pair to the last row instead.

A period total is the sum of its campus cells taken in ``campuses`` order,
so it equals the sum of the time series point's ``campuses`` values exactly,
float rounding included.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from admissions.core.logging import get_logger
from admissions.core.metric_registry import METRICS
from admissions.metrics.periods import (
    PeriodType,
    compute_period_changes,
    sort_periods_descending,
    unique_campuses,
)
from admissions.models.metrics_models import (
    MetricsResponse,
    RawMetricRow,
    TimeSeriesPoint,
)

logger = get_logger("metrics.aggregator")


def _latest_balances(
    periods: List[str],
    campuses: List[str],
    cells: Dict[str, Dict[str, float]],
) -> Dict[str, float]:
    """Each campus's value in the most recent period it appears in."""
    balances: Dict[str, float] = {}
    for period in periods:
        for campus, value in cells[period].items():
            balances.setdefault(campus, value)
    return {campus: balances.get(campus, 0.0) for campus in campuses}


def aggregate(
    rows: Sequence[RawMetricRow],
    period_granularity: PeriodType | str,
    metric_type: str,
    cumulative: Optional[bool] = None,
) -> MetricsResponse:
    """Build a MetricsResponse from normalized rows. Pure; never raises on content.

    ``cumulative`` defaults to the registry flag for ``metric_type``. For a
    cumulative metric each campus total is its latest balance, not the sum
    of its balances.
    """
    period_type = (
        period_granularity.value
        if isinstance(period_granularity, PeriodType)
        else str(period_granularity)
    )
    if not rows:
        return MetricsResponse.empty(period_type, metric_type)
    if cumulative is None:
        metric = METRICS.get(metric_type)
        cumulative = bool(metric and metric.cumulative)

    periods = sort_periods_descending(rows)
    campuses = unique_campuses(rows)

    cells: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    labels: Dict[str, str] = {}
    for row in rows:
        cells[row.period_date][row.campus_name] += row.count
        labels.setdefault(row.period_date, row.formatted_date)

    time_series: List[TimeSeriesPoint] = []
    totals: Dict[str, float] = {}
    for period in periods:
        values = {campus: cells[period].get(campus, 0.0) for campus in campuses}
        totals[period] = sum(values.values())
        time_series.append(
            TimeSeriesPoint(
                period=period,
                formatted_date=labels.get(period) or period,
                total=totals[period],
                campuses=values,
            )
        )

    if cumulative:
        campus_totals = _latest_balances(periods, campuses, cells)
    else:
        campus_totals = {
            campus: sum(cells[period].get(campus, 0.0) for period in periods)
            for campus in campuses
        }

    changes = compute_period_changes(list(reversed(periods)), totals)
    latest_period = periods[0] if periods else None

    logger.debug(
        f"Aggregated {len(rows)} rows into {len(periods)} periods "
        f"across {len(campuses)} campuses",
        extra={"metric_type": metric_type, "period": period_type},
    )

    return MetricsResponse(
        raw=list(rows),
        periods=periods,
        campuses=campuses,
        totals=totals,
        campus_totals=campus_totals,
        latest_period=latest_period,
        latest_total=totals[latest_period] if latest_period is not None else 0.0,
        changes=changes,
        time_series_data=time_series,
        period_type=period_type,
        metric_type=metric_type,
    )
