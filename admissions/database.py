"""Admissions Analytics — Database Engine & Session Factory.

The hosted Postgres owns the metrics views; this service only reads them,
so Postgres sessions run read-only with a statement timeout.
"""

from typing import List

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, create_engine

from admissions.config import settings
from admissions.core.logging import get_logger
from admissions.core.metric_registry import METRICS
from admissions.metrics.periods import view_suffix

logger = get_logger("database")

db_url = settings.effective_database_url
is_sqlite = db_url.startswith("sqlite")


def _mask_url(url: str) -> str:
    """Hide the password in a DB URL before it is logged or returned."""
    credentials, sep, host = url.partition("@")
    if not sep:
        return url
    scheme, _, userinfo = credentials.partition("://")
    user, has_password, _ = userinfo.partition(":")
    if not has_password:
        return url
    return f"{scheme}://{user}:****@{host}"


def _engine_kwargs() -> dict:
    if is_sqlite:
        return {"echo": False, "connect_args": {"check_same_thread": False}}
    return {
        "echo": False,
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "connect_args": {
            "options": (
                f"-c statement_timeout={settings.query_timeout_ms} "
                "-c default_transaction_read_only=on"
            )
        },
    }


logger.info(
    f"{'📦 SQLite' if is_sqlite else '🐘 PostgreSQL'} backend at {_mask_url(db_url)}"
)
engine = create_engine(db_url, **_engine_kwargs())


def test_connection() -> bool:
    """True when a trivial query succeeds against the configured database."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"❌ Database connection test failed: {e}")
        return False
    logger.info("✅ Database connection OK")
    return True


def expected_views() -> List[str]:
    """Every view the metric registry can query, across all granularities."""
    return sorted(
        {
            metric.view_name(view_suffix(period))
            for metric in METRICS.values()
            for period in metric.periods
        }
    )


def missing_views(bind: Engine, schema: str = "") -> List[str]:
    """Registry views absent from the metrics schema."""
    schema = schema or settings.metrics_schema
    inspector = inspect(bind)
    present = set(inspector.get_view_names(schema=schema))
    present.update(inspector.get_table_names(schema=schema))
    missing = [v for v in expected_views() if v not in present]
    if missing:
        logger.warning(f"{len(missing)} metrics views missing from {schema}: {', '.join(missing)}")
    return missing


def get_session():
    """Dependency — yields a DB session."""
    with Session(engine) as session:
        yield session
