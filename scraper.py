#!/usr/bin/env python3
"""Main entry point for the peptide vendor price scraper."""

import argparse
import json
import logging
import sys
import time
from typing import Optional

from dotenv import load_dotenv
load_dotenv()

from config import EXCLUDED_VENDORS, LOG_LEVEL, VENDOR_DELAY
from errors import ScrapeConfigError, VendorLookupError
from models import Vendor, VendorResult
from monitor import RunMonitor
from parsers import Fetcher, VendorParser
from updater import PriceUpdater, scrape_status

logger = logging.getLogger(__name__)


class PriceScraper:
    """Runs the scrape pipeline over a set of vendors, one at a time."""

    def __init__(
        self,
        store,
        fetcher: Optional[Fetcher] = None,
        monitor: Optional[RunMonitor] = None,
        vendor_delay: float = VENDOR_DELAY,
    ):
        self.store = store
        self.fetcher = fetcher or Fetcher()
        self.monitor = monitor
        self.vendor_delay = vendor_delay
        self.updater = PriceUpdater(store)

    def load_vendors(self, vendor_slug: Optional[str] = None) -> list[dict]:
        """Active vendor rows, or the one matching ``vendor_slug`` (active or not)."""
        rows = self.store.get_vendors(vendor_slug)
        if not rows:
            raise VendorLookupError("No vendors found matching criteria")

        if vendor_slug:
            selected = [r for r in rows if r.get("slug") == vendor_slug]
        else:
            selected = [
                r for r in rows
                if r.get("is_active", True) and r.get("slug") not in EXCLUDED_VENDORS
            ]

        if not selected:
            if vendor_slug:
                raise VendorLookupError(f"Vendor '{vendor_slug}' is inactive or excluded.")
            raise VendorLookupError("No active vendors to scrape")
        return selected

    def run(self, vendor_slug: Optional[str] = None) -> list[VendorResult]:
        """Scrape every selected vendor sequentially.

        Raises VendorLookupError when there is nothing to scrape; any other
        failure, including a malformed vendor row, is confined to the vendor
        it happened in.
        """
        rows = self.load_vendors(vendor_slug)
        logger.info(f"=== Scrape run starting: {len(rows)} vendor(s) ===")

        results = []
        for row in rows:
            results.append(self.scrape_vendor(row))
            time.sleep(self.vendor_delay)

        failed = sum(1 for r in results if r.status == "failed")
        logger.info(
            f"=== Scrape run done: {len(results)} vendor(s), "
            f"{sum(r.updated for r in results)} prices updated, {failed} failed ==="
        )
        return results

    def scrape_vendor(self, row: dict) -> VendorResult:
        slug = row.get("slug") or f"vendor-{row.get('id')}"
        logger.info(f"--- Scraping {row.get('name') or slug} ({slug}) ---")
        result = VendorResult(vendor=row.get("name") or slug)
        start = time.monotonic()
        try:
            vendor = Vendor.from_row(row)
            outcome = VendorParser(vendor, self.fetcher).get_all_pages()
            result.duration_ms = int((time.monotonic() - start) * 1000)
            result.found = len(outcome.products)
            result.errors = list(outcome.errors)
            result.updated = self.updater.update_prices(vendor.id, outcome.products)
        except ScrapeConfigError as e:
            logger.warning(f"[{slug}] {e}")
            result.errors.append(f"Failed: {e}")
        except Exception as e:
            logger.exception(f"[{slug}] Unexpected failure")
            result.errors.append(f"Failed: {e}")
        if not result.duration_ms:
            result.duration_ms = int((time.monotonic() - start) * 1000)

        result.status = scrape_status(result.errors, result.found)
        self._write_log(row.get("id"), slug, result)
        if self.monitor:
            self.monitor.record_vendor(slug, result)

        logger.info(
            f"[{slug}] {result.status}: {result.found} found, "
            f"{result.updated} updated, {len(result.errors)} error(s)"
        )
        return result

    def _write_log(self, vendor_id, slug: str, result: VendorResult):
        try:
            self.store.insert_scrape_log({
                "vendor_id": vendor_id,
                "status": result.status,
                "products_found": result.found,
                "products_updated": result.updated,
                "error_message": "; ".join(result.errors),
                "duration_ms": result.duration_ms,
            })
        except Exception as e:
            logger.error(f"[{slug}] Failed to write scrape log: {e}")
        try:
            self.store.mark_vendor_scraped(vendor_id)
        except Exception as e:
            logger.error(f"[{slug}] Failed to update last_scraped_at: {e}")


def run_scrape(vendor_slug: Optional[str] = None, monitor: Optional[RunMonitor] = None) -> list[VendorResult]:
    """Open the configured store and run one scrape."""
    from store import get_store

    store = get_store()
    try:
        return PriceScraper(store, monitor=monitor).run(vendor_slug)
    finally:
        store.close()


def seed_vendors(path: str) -> int:
    """Load vendors from a JSON list into the local SQLite database."""
    import db

    with open(path, encoding="utf-8") as f:
        vendors = json.load(f)

    conn = db.get_connection()
    db.init_db(conn)
    try:
        for vendor in vendors:
            db.upsert_vendor(conn, vendor)
        conn.commit()
    finally:
        conn.close()
    logger.info(f"Seeded {len(vendors)} vendor(s) from {path}")
    return len(vendors)


def main():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    parser = argparse.ArgumentParser(description="Peptide vendor price scraper")
    parser.add_argument(
        "--vendor", type=str, help="Scrape a single vendor by slug"
    )
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit (no scheduler)"
    )
    parser.add_argument(
        "--seed-vendors", metavar="FILE", help="Load vendors from a JSON file into SQLite"
    )
    parser.add_argument(
        "--serve", action="store_true", help="Serve the HTTP trigger with uvicorn"
    )
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    if args.seed_vendors:
        seed_vendors(args.seed_vendors)
        return

    if args.serve:
        import uvicorn
        uvicorn.run("api:app", host="0.0.0.0", port=args.port)
        return

    if args.once or args.vendor:
        try:
            results = run_scrape(args.vendor)
        except VendorLookupError as e:
            logger.error(str(e))
            sys.exit(1)
        print(json.dumps({"success": True, "results": [r.to_dict() for r in results]}, indent=2))
    else:
        from scheduler import run_scheduler
        run_scheduler()


if __name__ == "__main__":
    main()
