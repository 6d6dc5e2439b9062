"""Admissions Analytics — Metrics API Routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from admissions.api.dependencies import get_metrics_service
from admissions.config import settings
from admissions.connectors.query_engine import QueryExecutionError
from admissions.core.logging import get_logger
from admissions.core.metric_registry import (
    METRICS,
    MetricUnit,
    UnknownMetricError,
    UnsupportedPeriodError,
    metrics_by_unit,
)
from admissions.metrics.periods import PeriodType
from admissions.models.metrics_models import MetricsResponse
from admissions.services.metrics_service import MetricsService

logger = get_logger("api.metrics")

router = APIRouter(prefix="/metrics", tags=["Metrics"])


@router.get("")
async def list_metrics(
    unit: Optional[MetricUnit] = Query(None, description="count | currency"),
):
    """Registered metric types and the views behind them."""
    metrics = metrics_by_unit(unit) if unit else list(METRICS.values())
    return {
        "status": "success",
        "metrics": [
            {
                "name": m.name,
                "view_base": m.view_base,
                "unit": m.unit.value,
                "cumulative": m.cumulative,
                "periods": [p.value for p in m.periods],
                "description": m.description,
            }
            for m in metrics
        ],
    }


@router.get("/{metric_type}", response_model=MetricsResponse)
def get_metrics(
    metric_type: str,
    period: PeriodType = Query(PeriodType.WEEK, description="day | week | month"),
    lookback_units: int = Query(
        settings.default_lookback_units, ge=1, le=settings.max_lookback_units
    ),
    campus: Optional[str] = Query(None, description="Campus name; omit for all campuses"),
    service: MetricsService = Depends(get_metrics_service),
):
    """Period totals, campus totals, changes and time series for a metric."""
    try:
        return service.get_metrics(metric_type, period, lookback_units, campus)
    except (UnknownMetricError, UnsupportedPeriodError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QueryExecutionError as e:
        logger.error(
            f"Failed to load {metric_type} metrics: {e}",
            extra={"metric_type": metric_type, "period": period.value, "campus": campus},
        )
        raise HTTPException(status_code=502, detail=f"Failed to load {metric_type} metrics")
