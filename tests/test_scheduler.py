"""
Tests for the periodic scrape job.
"""
from datetime import timedelta

from errors import VendorLookupError
from models import VendorResult
from scheduler import _scrape_job, build_scheduler


def test_job_never_overlaps():
    scheduler = build_scheduler(interval_minutes=30)
    job = scheduler.get_job("peptide_price_scraper")
    assert job.max_instances == 1
    assert job.coalesce is True
    assert job.trigger.interval == timedelta(minutes=30)


def test_job_runs_scrape(monkeypatch):
    calls = []

    def fake_run_scrape():
        calls.append(True)
        return [VendorResult(vendor="Alpha", found=2, updated=2)]

    monkeypatch.setattr("scraper.run_scrape", fake_run_scrape)
    _scrape_job()
    assert calls == [True]


def test_job_swallows_lookup_errors(monkeypatch):
    def no_vendors():
        raise VendorLookupError("No active vendors to scrape")

    monkeypatch.setattr("scraper.run_scrape", no_vendors)
    _scrape_job()


def test_job_survives_unexpected_errors(monkeypatch):
    def broken():
        raise RuntimeError("supabase unreachable")

    monkeypatch.setattr("scraper.run_scrape", broken)
    _scrape_job()
