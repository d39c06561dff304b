"""
Pytest fixtures for the peptide price scraper tests.
"""
import os
import sys

import pytest
import requests

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import db
from models import Vendor
from store import SQLiteStore


DEFAULT_CONFIG = {
    "productSelector": ".product",
    "nameSelector": ".title",
    "priceSelector": ".price",
}


def make_response(status_code=200, text="", url="https://vendor.test/peptides", reason=None):
    """Build a real requests.Response without touching the network."""
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = text.encode("utf-8")
    resp.encoding = "utf-8"
    resp.url = url
    resp.reason = reason or {
        200: "OK", 403: "Forbidden", 404: "Not Found", 429: "Too Many Requests",
        500: "Internal Server Error", 503: "Service Unavailable",
    }.get(status_code, "")
    return resp


def product_html(products, next_link=False):
    """Listing page with one div.product per (name, price, extra_html) tuple."""
    nodes = []
    for name, price, *extra in products:
        nodes.append(
            f'<div class="product"><h2 class="title">{name}</h2>'
            f'<span class="price">{price}</span>{"".join(extra)}</div>'
        )
    pager = '<nav><a class="next" href="?product-page=2">Next</a></nav>' if next_link else ""
    return f"<html><body><main>{''.join(nodes)}</main>{pager}</body></html>"


class FakeFetcher:
    """Serves canned responses by URL and records every request."""

    def __init__(self, pages=None, errors=None):
        self.pages = pages or {}
        self.errors = errors or {}
        self.calls = []

    def fetch_with_retry(self, url, retries=None, extra_headers=None):
        self.calls.append(url)
        if url in self.errors:
            raise self.errors[url]
        if url not in self.pages:
            return make_response(404, "<html><body>Not found</body></html>", url=url)
        page = self.pages[url]
        if isinstance(page, requests.Response):
            return page
        return make_response(200, page, url=url)


def make_vendor(**overrides):
    data = {
        "id": 1,
        "slug": "test-vendor",
        "name": "Test Vendor",
        "website_url": "https://vendor.test",
        "scrape_config": dict(DEFAULT_CONFIG),
        "is_active": True,
    }
    data.update(overrides)
    return Vendor.model_validate(data)


@pytest.fixture
def sqlite_conn():
    """In-memory SQLite database for isolated testing."""
    conn = db.get_connection(":memory:")
    db.init_db(conn)
    yield conn
    conn.close()


@pytest.fixture
def sqlite_store(sqlite_conn):
    return SQLiteStore(sqlite_conn)


@pytest.fixture
def no_sleep(monkeypatch):
    """Record requested sleeps instead of waiting."""
    slept = []
    monkeypatch.setattr("time.sleep", lambda seconds: slept.append(seconds))
    return slept
