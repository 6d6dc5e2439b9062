"""Admissions Analytics — Metrics Models.

``RawMetricRow`` is the normalized shape every metrics view is folded into;
``MetricsResponse`` is what the dashboard charts consume. Response fields
serialize with the camelCase names the dashboard already reads.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

ALL_CAMPUSES = "All Campuses"


class RawMetricRow(BaseModel):
    """One fact per (period, campus) from a metrics view."""

    model_config = {"frozen": True}

    period_type: str
    period_date: str
    formatted_date: str = ""
    campus_name: str = ALL_CAMPUSES
    count: float = 0.0


class PeriodChanges(BaseModel):
    """Period-over-period deltas keyed by period.

    The oldest period never has an entry.
    """

    model_config = {"frozen": True}

    raw: Dict[str, float] = {}
    percentage: Dict[str, float] = {}


class TimeSeriesPoint(BaseModel):
    """One chart point: a period with its total and per-campus values."""

    model_config = {"frozen": True}

    period: str
    formatted_date: str
    total: float
    campuses: Dict[str, float] = {}


class MetricsResponse(BaseModel):
    """Aggregated view of a metric over a lookback window."""

    model_config = {"frozen": True, "populate_by_name": True, "alias_generator": to_camel}

    raw: List[RawMetricRow] = []
    periods: List[str] = []
    campuses: List[str] = []
    totals: Dict[str, float] = {}
    campus_totals: Dict[str, float] = {}
    latest_period: Optional[str] = None
    latest_total: float = 0.0
    changes: PeriodChanges = PeriodChanges()
    time_series_data: List[TimeSeriesPoint] = []
    period_type: str = "week"
    metric_type: str = "leads"

    @classmethod
    def empty(cls, period_type: str, metric_type: str) -> "MetricsResponse":
        """Well-formed response for a window with no rows."""
        return cls(period_type=period_type, metric_type=metric_type)

    def get_count(self, period: str, campus: str) -> float:
        """Count for a (period, campus) pair; 0 when no row matches.

        Duplicate pairs resolve to the last row, unlike ``totals`` which sums them.
        """
        for row in reversed(self.raw):
            if row.period_date == period and row.campus_name == campus:
                return row.count
        return 0.0
