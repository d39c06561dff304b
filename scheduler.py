"""APScheduler wrapper for periodic price scraping."""

import logging
import signal
import sys

from apscheduler.schedulers.blocking import BlockingScheduler

from config import SCRAPE_INTERVAL_MINUTES
from errors import VendorLookupError

logger = logging.getLogger(__name__)


def _scrape_job():
    """Job function called by scheduler."""
    from scraper import run_scrape
    logger.info("=== Scheduled scrape starting ===")
    try:
        results = run_scrape()
        failed = sum(1 for r in results if r.status == "failed")
        logger.info(
            f"=== Scheduled scrape done. {len(results)} vendors "
            f"({sum(r.updated for r in results)} prices updated, {failed} failed) ==="
        )
    except VendorLookupError as e:
        logger.warning(f"Scheduled scrape skipped: {e}")
    except Exception as e:
        logger.error(f"Scheduled scrape failed: {e}")


def build_scheduler(interval_minutes: int = SCRAPE_INTERVAL_MINUTES) -> BlockingScheduler:
    scheduler = BlockingScheduler()
    scheduler.add_job(
        _scrape_job,
        "interval",
        minutes=interval_minutes,
        id="peptide_price_scraper",
        name="Peptide Price Scraper",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def run_scheduler():
    """Start the blocking scheduler."""
    scheduler = build_scheduler()

    def shutdown(signum, frame):
        logger.info("Shutting down scheduler...")
        scheduler.shutdown(wait=False)
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    logger.info(
        f"Scheduler started. Scraping every {SCRAPE_INTERVAL_MINUTES} minutes. "
        "Press Ctrl+C to stop."
    )
    # Run immediately on start, then schedule
    _scrape_job()
    scheduler.start()
