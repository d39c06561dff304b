"""
FastAPI trigger for the peptide price scraper.

Endpoints:
- POST /scrape-prices            run a scrape (optionally {"vendor_slug": "..."})
- GET  /api/scrape-logs          recent scrape_logs rows
- GET  /api/monitor              in-memory recent runs, alerts and log lines
- GET  /api/health

Run with:
    uvicorn api:app --port 8000
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from dotenv import load_dotenv
load_dotenv()

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from config import ALLOWED_ORIGIN, LOG_LEVEL
from errors import VendorLookupError
from monitor import RunMonitor
from scraper import PriceScraper
from store import get_store

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": ALLOWED_ORIGIN,
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

# Logger namespaces whose records are kept in the monitor's ring buffer
MONITORED_LOGGERS = ("scraper", "parsers", "updater", "store")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.monitor.attach(*MONITORED_LOGGERS)
    yield
    app.state.monitor.detach(*MONITORED_LOGGERS)


app = FastAPI(
    title="Peptide Price Scraper",
    description="Scrapes vendor storefronts and records peptide prices",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.monitor = RunMonitor()

app.add_middleware(
    CORSMiddleware,
    allow_origins=[ALLOWED_ORIGIN],
    allow_methods=["POST", "OPTIONS", "GET"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


class VendorSummary(BaseModel):
    vendor: str
    found: int
    updated: int
    errors: list[str]


class ScrapeResponse(BaseModel):
    success: bool
    results: list[VendorSummary]
    vendors_scraped: int


def get_monitor(request: Request) -> RunMonitor:
    return request.app.state.monitor


def get_store_factory() -> Callable:
    """Dependency returning a zero-arg callable that opens a store."""
    return get_store


async def _vendor_slug_from_body(request: Request) -> Optional[str]:
    try:
        body = await request.json()
    except Exception:
        return None
    if isinstance(body, dict):
        slug = body.get("vendor_slug")
        return slug if isinstance(slug, str) and slug else None
    return None


def _run(store_factory: Callable, monitor: RunMonitor, vendor_slug: Optional[str]):
    # Store is opened inside the worker thread; sqlite connections are thread-bound
    store = store_factory()
    try:
        return PriceScraper(store, monitor=monitor).run(vendor_slug)
    finally:
        store.close()


@app.options("/scrape-prices")
@app.options("/functions/v1/scrape-prices")
def scrape_prices_preflight():
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@app.post("/scrape-prices", response_model=ScrapeResponse)
@app.post("/functions/v1/scrape-prices", response_model=ScrapeResponse)
async def scrape_prices(
    request: Request,
    response: Response,
    store_factory: Callable = Depends(get_store_factory),
    monitor: RunMonitor = Depends(get_monitor),
):
    """Run a scrape across active vendors, or one vendor by slug."""
    vendor_slug = await _vendor_slug_from_body(request)
    try:
        results = await run_in_threadpool(_run, store_factory, monitor, vendor_slug)
    except VendorLookupError as e:
        return JSONResponse({"error": str(e)}, status_code=500, headers=CORS_HEADERS)
    except Exception as e:
        logger.exception("Scrape run failed")
        return JSONResponse({"error": str(e)}, status_code=500, headers=CORS_HEADERS)

    response.headers.update(CORS_HEADERS)
    return ScrapeResponse(
        success=True,
        results=[VendorSummary(**r.to_dict()) for r in results],
        vendors_scraped=len(results),
    )


@app.get("/api/scrape-logs", tags=["logs"])
def scrape_logs(
    limit: int = Query(50, ge=1, le=500),
    store_factory: Callable = Depends(get_store_factory),
):
    """Most recent scrape_logs rows, newest first."""
    store = store_factory()
    try:
        return {"logs": store.recent_scrape_logs(limit)}
    finally:
        store.close()


@app.get("/api/monitor", tags=["logs"])
def monitor_snapshot(monitor: RunMonitor = Depends(get_monitor)):
    return monitor.snapshot()


@app.get("/api/health", tags=["health"])
def health_check():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
