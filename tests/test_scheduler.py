"""
tests/test_scheduler.py

Tests for the scheduled cache refresh job.
"""

from __future__ import annotations

import asyncio

from sqlmodel import create_engine

from admissions.core.lookup_cache import LookupCache, make_key
from admissions.scheduler import jobs


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestRefreshCachesJob:
    def test_reloads_campuses_and_purges_lookups(self, view_engine, monkeypatch) -> None:
        monkeypatch.setattr(jobs, "engine", view_engine)
        campus_cache = LookupCache()
        clock = FakeClock()
        lookup_cache = LookupCache(ttl_seconds=10, clock=clock)
        lookup_cache.set("stale", 1)
        clock.now = 60

        asyncio.run(jobs.refresh_caches_job(campus_cache, lookup_cache))

        active = campus_cache.get(make_key("active_campuses", "25/26"))
        assert [c.campus_name for c in active] == ["Atlanta", "Miami"]
        assert len(lookup_cache) == 0

    def test_failure_is_logged_not_raised(self, monkeypatch) -> None:
        monkeypatch.setattr(jobs, "engine", create_engine("sqlite://"))
        campus_cache = LookupCache()
        asyncio.run(jobs.refresh_caches_job(campus_cache, LookupCache()))
        assert len(campus_cache) == 0

    def test_job_runs_on_the_event_loop(self) -> None:
        assert asyncio.iscoroutinefunction(jobs.refresh_caches_job)


class TestStartScheduler:
    def test_disabled_by_config(self, monkeypatch) -> None:
        monkeypatch.setattr(jobs.settings, "scheduler_enabled", False)
        jobs.start_scheduler(LookupCache(), LookupCache())
        assert not jobs.scheduler.running
        assert jobs.scheduler.get_jobs() == []
