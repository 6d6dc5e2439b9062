"""Admissions Analytics — Period Utilities.

Period keys arrive as strings from the views. They are ordered by the
calendar value they represent, never by their text: locale labels such as
``Mar 2024`` or ``02/01/24`` do not sort correctly as strings.
"""

import math
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol

from admissions.models.metrics_models import PeriodChanges


class PeriodType(str, Enum):
    """Bucket granularity of a metrics view."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class _HasPeriodAndCampus(Protocol):
    period_date: str
    campus_name: str


# Non-ISO labels seen in view output, tried in order after ISO parsing
_DATE_FORMATS = (
    "%m/%d/%y",
    "%m/%d/%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %Y",
    "%B %Y",
)

_VIEW_SUFFIXES = {
    PeriodType.DAY: "daily",
    PeriodType.WEEK: "weekly",
    PeriodType.MONTH: "monthly",
}


def parse_period_date(value: Any) -> Optional[datetime]:
    """Parse a period key into a naive UTC datetime, or None if unrecognised."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        parsed = None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def sort_periods_descending(rows: Iterable[_HasPeriodAndCampus]) -> List[str]:
    """Distinct period keys, most recent first.

    Keys that cannot be parsed go last, in the order they were first seen.
    """
    seen: Dict[str, Optional[datetime]] = {}
    for row in rows:
        if row.period_date not in seen:
            seen[row.period_date] = parse_period_date(row.period_date)

    dated = [(key, when) for key, when in seen.items() if when is not None]
    undated = [key for key, when in seen.items() if when is None]
    dated.sort(key=lambda item: item[1], reverse=True)
    return [key for key, _ in dated] + undated


def unique_campuses(rows: Iterable[_HasPeriodAndCampus]) -> List[str]:
    """Distinct campus names in first-seen order."""
    return list(dict.fromkeys(row.campus_name for row in rows))


def percentage_change(previous: float, current: float) -> float:
    """Percent change from previous to current.

    A zero baseline yields 0 when current is also 0, else +/-100 following
    the sign of current. The result is always finite.
    """
    if previous == 0:
        if current == 0:
            return 0.0
        return math.copysign(100.0, current)
    return (current - previous) / previous * 100


def compute_period_changes(
    sorted_periods_oldest_first: List[str],
    totals: Dict[str, float],
) -> PeriodChanges:
    """Raw and percentage change of each period versus the one before it."""
    raw: Dict[str, float] = {}
    percentage: Dict[str, float] = {}

    for previous, current in zip(
        sorted_periods_oldest_first, sorted_periods_oldest_first[1:]
    ):
        prev_total = totals.get(previous, 0.0)
        curr_total = totals.get(current, 0.0)
        raw[current] = curr_total - prev_total
        percentage[current] = percentage_change(prev_total, curr_total)

    return PeriodChanges(raw=raw, percentage=percentage)


def view_suffix(period: PeriodType) -> str:
    """View name suffix for a granularity: daily | weekly | monthly."""
    return _VIEW_SUFFIXES[PeriodType(period)]


def lookback_start(
    period: PeriodType,
    lookback_units: int,
    today: Optional[date] = None,
) -> date:
    """First date of the lookback window.

    Truncates today to the start of its bucket (ISO week starts Monday),
    then steps back ``lookback_units`` buckets.
    """
    today = today or datetime.now(timezone.utc).date()
    period = PeriodType(period)

    if period == PeriodType.DAY:
        return today - timedelta(days=lookback_units)
    if period == PeriodType.WEEK:
        week_start = today - timedelta(days=today.weekday())
        return week_start - timedelta(weeks=lookback_units)

    year, month_index = divmod(today.year * 12 + today.month - 1 - lookback_units, 12)
    return date(year, month_index + 1, 1)
