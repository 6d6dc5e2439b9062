"""
tests/test_query_engine.py

Tests for metrics view query composition, execution and row normalization.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import text

from admissions.connectors.query_engine import (
    QueryExecutionError,
    build_metrics_query,
    execute_query,
    normalize_metric_row,
    safe_identifier,
)
from admissions.core.metric_registry import METRICS, MetricDefinition, UnsupportedPeriodError
from admissions.metrics.periods import PeriodType

TODAY = date(2024, 3, 1)


class TestBuildMetricsQuery:
    def test_view_and_measure_come_from_registry(self) -> None:
        clause, _ = build_metrics_query(
            METRICS["arr"], PeriodType.WEEK, 4, schema="fivetran_views", today=TODAY
        )
        sql = str(clause)
        assert "FROM fivetran_views.arr_metrics_weekly" in sql
        assert "arr_amount AS count" in sql
        assert "ORDER BY period_date DESC" in sql

    def test_window_start_is_bound(self) -> None:
        clause, params = build_metrics_query(
            METRICS["leads"], PeriodType.MONTH, 12, today=TODAY
        )
        assert ":start_date" in str(clause)
        assert params == {"start_date": date(2023, 3, 1)}

    def test_campus_filter_is_bound_not_interpolated(self) -> None:
        campus = "Miami'; DROP TABLE leads; --"
        clause, params = build_metrics_query(
            METRICS["leads"], PeriodType.DAY, 7, campus=campus, today=TODAY
        )
        sql = str(clause)
        assert "campus_name = :campus" in sql
        assert "DROP TABLE" not in sql
        assert params["campus"] == campus

    def test_no_campus_filter_without_campus(self) -> None:
        clause, params = build_metrics_query(
            METRICS["leads"], PeriodType.DAY, 7, today=TODAY
        )
        assert "campus_name =" not in str(clause)
        assert "campus" not in params

    def test_rejects_unsafe_schema(self) -> None:
        with pytest.raises(ValueError):
            build_metrics_query(
                METRICS["leads"], PeriodType.DAY, 7, schema="views; DROP", today=TODAY
            )

    def test_rejects_unsafe_count_field(self) -> None:
        metric = MetricDefinition("bad", "lead_metrics", "lead_count) --")
        with pytest.raises(ValueError):
            build_metrics_query(metric, PeriodType.DAY, 7, today=TODAY)


class TestCumulativeQuery:
    def test_running_sum_over_weekly_arr(self) -> None:
        clause, params = build_metrics_query(
            METRICS["cumulativeArr"], PeriodType.WEEK, 12, schema="fivetran_views", today=TODAY
        )
        sql = str(clause)
        assert "FROM fivetran_views.arr_metrics_weekly" in sql
        assert "SUM(arr_amount) OVER (PARTITION BY campus_name ORDER BY period_date)" in sql
        assert sql.index(") AS running WHERE period_date >= :start_date") > sql.index("OVER")
        assert params == {"start_date": date(2023, 12, 4)}

    def test_campus_filter_applies_before_window(self) -> None:
        clause, params = build_metrics_query(
            METRICS["cumulativeArr"], PeriodType.WEEK, 12, campus="Miami", today=TODAY
        )
        sql = str(clause)
        assert sql.index("campus_name = :campus") < sql.index(") AS running")
        assert params["campus"] == "Miami"

    @pytest.mark.parametrize("period", [PeriodType.DAY, PeriodType.MONTH])
    def test_other_granularities_are_rejected(self, period) -> None:
        with pytest.raises(UnsupportedPeriodError) as exc_info:
            build_metrics_query(METRICS["cumulativeArr"], period, 12, today=TODAY)
        assert exc_info.value.metric_type == "cumulativeArr"
        assert exc_info.value.period == period


class TestSafeIdentifier:
    @pytest.mark.parametrize("name", ["fivetran_views", "_x", "lead_metrics_weekly2"])
    def test_accepts_plain_identifiers(self, name) -> None:
        assert safe_identifier(name) == name

    @pytest.mark.parametrize("name", ["", "1abc", "a.b", "a b", "a-b", 'a"'])
    def test_rejects_everything_else(self, name) -> None:
        with pytest.raises(ValueError):
            safe_identifier(name)


class TestExecuteQuery:
    def test_runs_against_view(self, session) -> None:
        clause, params = build_metrics_query(
            METRICS["leads"], PeriodType.MONTH, 12, today=TODAY
        )
        rows = execute_query(session, clause, params, query_name="leads_month")
        assert len(rows) == 5
        assert {r["campus_name"] for r in rows} == {"Atlanta", "Miami"}
        assert all(r["period_date"] >= "2023-03-01" for r in rows)

    def test_campus_filter(self, session) -> None:
        clause, params = build_metrics_query(
            METRICS["leads"], PeriodType.MONTH, 12, campus="Miami", today=TODAY
        )
        rows = execute_query(session, clause, params)
        assert sorted(r["count"] for r in rows) == [40, 60]

    def test_missing_view_raises_query_error(self, session) -> None:
        clause, params = build_metrics_query(
            METRICS["arr"], PeriodType.MONTH, 12, today=TODAY
        )
        with pytest.raises(QueryExecutionError) as exc_info:
            execute_query(session, clause, params, query_name="arr_month")
        assert exc_info.value.query_name == "arr_month"

    def test_cumulative_balance_includes_weeks_before_window(self, arr_weekly, session) -> None:
        clause, params = build_metrics_query(
            METRICS["cumulativeArr"], PeriodType.WEEK, 12, today=TODAY
        )
        rows = execute_query(session, clause, params, query_name="cumulative_arr")
        balances = {(r["period_date"], r["campus_name"]): r["count"] for r in rows}
        assert balances == {
            ("2024-01-08", "Miami"): 600,
            ("2024-01-01", "Miami"): 300,
            ("2024-01-01", "Atlanta"): 50,
        }

    def test_plain_text_query(self, session) -> None:
        rows = execute_query(session, text("SELECT 1 AS one"))
        assert rows == [{"one": 1}]


class TestNormalizeMetricRow:
    def test_complete_row(self) -> None:
        row = normalize_metric_row(
            {
                "period_type": "week",
                "period_date": "2024-01-01",
                "formatted_date": "Jan 1",
                "campus_name": "Miami",
                "count": 12,
            },
            PeriodType.WEEK,
        )
        assert row.period_date == "2024-01-01"
        assert row.formatted_date == "Jan 1"
        assert row.campus_name == "Miami"
        assert row.count == 12

    def test_defaults_for_missing_fields(self) -> None:
        row = normalize_metric_row({"period_date": "2024-01-01"}, PeriodType.MONTH)
        assert row.period_type == "month"
        assert row.formatted_date == ""
        assert row.campus_name == "All Campuses"
        assert row.count == 0

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, 0),
            ("abc", 0),
            ("", 0),
            (True, 0),
            ("nan", 0),
            ("inf", 0),
            ("12.5", 12.5),
            (" 7 ", 7),
            (Decimal("1250.75"), 1250.75),
        ],
    )
    def test_count_coercion(self, value, expected) -> None:
        row = normalize_metric_row({"period_date": "x", "count": value}, PeriodType.DAY)
        assert row.count == expected

    def test_date_values_become_iso_keys(self) -> None:
        row = normalize_metric_row({"period_date": date(2024, 1, 1)}, PeriodType.DAY)
        assert row.period_date == "2024-01-01"
        row = normalize_metric_row(
            {"period_date": datetime(2024, 1, 1, 0, 0)}, PeriodType.DAY
        )
        assert row.period_date == "2024-01-01T00:00:00"
