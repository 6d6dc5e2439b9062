"""Admissions Analytics — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Database (hosted Postgres with the fivetran views) ──
    database_url: str = ""
    metrics_schema: str = "fivetran_views"
    query_timeout_ms: int = 30000

    # ── Edge Functions ──
    supabase_url: str = ""
    supabase_service_key: str = ""
    edge_function_timeout: float = 30.0

    # ── Metrics ──
    default_lookback_units: int = 12
    max_lookback_units: int = 104
    school_year: str = "25/26"

    # ── Caching ──
    campus_cache_ttl_seconds: int = 300
    lookup_cache_ttl_seconds: Optional[int] = None  # None = keep for process lifetime

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    campus_refresh_minutes: int = 60

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/admissions.db"
        return "sqlite:///./admissions.db"

    @property
    def edge_functions_base(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/functions/v1"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
