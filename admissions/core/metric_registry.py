"""Admissions Analytics — Metric Registry.

Maps each dashboard metric to the pre-aggregated view that backs it.
The views live in the hosted database and already do the grouping and
date bucketing; each exposes one measure column whose name differs per
metric. New metrics only need a registry entry here.
"""

from enum import Enum
from typing import Dict, Tuple

from admissions.metrics.periods import PeriodType


class MetricUnit(str, Enum):
    """How a metric's measure is interpreted for display."""

    COUNT = "count"  # Leads, opportunities
    CURRENCY = "currency"  # ARR amounts


class UnknownMetricError(ValueError):
    """Raised when a metric type has no registered view."""

    def __init__(self, metric_type: str):
        self.metric_type = metric_type
        super().__init__(
            f"Unknown metric type '{metric_type}'. "
            f"Expected one of: {', '.join(sorted(METRICS))}"
        )


class MetricDefinition:
    """Describes a single metric and the view it is read from.

    A cumulative metric carries running balances: its view holds per-period
    amounts that are summed over time per campus, and a campus total is the
    latest balance rather than the sum of balances.
    """

    def __init__(
        self,
        name: str,
        view_base: str,
        count_field: str,
        unit: MetricUnit = MetricUnit.COUNT,
        description: str = "",
        cumulative: bool = False,
        periods: Tuple[PeriodType, ...] = tuple(PeriodType),
    ):
        self.name = name
        self.view_base = view_base
        self.count_field = count_field
        self.unit = unit
        self.description = description
        self.cumulative = cumulative
        self.periods = periods

    def supports(self, period: PeriodType) -> bool:
        return PeriodType(period) in self.periods

    def view_name(self, suffix: str) -> str:
        """View for a period suffix, e.g. ``lead_metrics_weekly``."""
        return f"{self.view_base}_{suffix}"

    def __repr__(self) -> str:
        return f"<Metric {self.name} ({self.view_base}.{self.count_field})>"


# ─────────────────────────────────────────────
# ADMISSIONS METRICS — Canonical Registry
# ─────────────────────────────────────────────

METRICS: Dict[str, MetricDefinition] = {
    "leads": MetricDefinition(
        "leads", "lead_metrics", "lead_count", MetricUnit.COUNT, "Leads created"
    ),
    "convertedLeads": MetricDefinition(
        "convertedLeads",
        "converted_leads",
        "lead_count",
        MetricUnit.COUNT,
        "Leads converted to opportunities",
    ),
    "arr": MetricDefinition(
        "arr",
        "arr_metrics",
        "arr_amount",
        MetricUnit.CURRENCY,
        "Annual recurring revenue from closed won opportunities",
    ),
    "closedWon": MetricDefinition(
        "closedWon",
        "closed_won_metrics",
        "opportunity_count",
        MetricUnit.COUNT,
        "Closed won opportunities",
    ),
    "cumulativeArr": MetricDefinition(
        "cumulativeArr",
        "arr_metrics",
        "arr_amount",
        MetricUnit.CURRENCY,
        "Running ARR total for the school year",
        cumulative=True,
        periods=(PeriodType.WEEK,),
    ),
}


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────


def get_metric(name: str) -> MetricDefinition:
    """Look up a metric by name, raising UnknownMetricError on a miss."""
    metric = METRICS.get(name)
    if metric is None:
        raise UnknownMetricError(name)
    return metric


def metrics_by_unit(unit: MetricUnit) -> list[MetricDefinition]:
    """Return all metrics measured in a given unit."""
    return [m for m in METRICS.values() if m.unit == unit]


class UnsupportedPeriodError(ValueError):
    """Raised when a metric is not available at the requested granularity."""

    def __init__(self, metric: MetricDefinition, period: PeriodType):
        self.metric_type = metric.name
        self.period = PeriodType(period)
        super().__init__(
            f"Metric '{metric.name}' is not available by {self.period.value}. "
            f"Supported: {', '.join(p.value for p in metric.periods)}"
        )
