"""SQLite database operations for the peptide price scraper."""

import json
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from config import DB_PATH


def now_utc() -> str:
    """Return current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


SCHEMA = """
CREATE TABLE IF NOT EXISTS vendors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slug TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    website_url TEXT NOT NULL,
    scrape_config TEXT,
    is_active BOOLEAN DEFAULT 1,
    last_scraped_at DATETIME,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS peptide_prices (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    vendor_id INTEGER NOT NULL REFERENCES vendors(id),
    peptide_name TEXT NOT NULL,
    peptide_slug TEXT NOT NULL,
    price REAL NOT NULL,
    in_stock BOOLEAN DEFAULT 1,
    quantity_mg REAL,
    quantity_unit TEXT,
    price_per_mg REAL,
    original_product_name TEXT,
    product_url TEXT,
    last_verified_at DATETIME,
    updated_at DATETIME,
    UNIQUE(vendor_id, peptide_slug)
);

CREATE TABLE IF NOT EXISTS price_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    peptide_price_id INTEGER REFERENCES peptide_prices(id),
    price REAL NOT NULL,
    quantity_mg REAL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS scrape_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    vendor_id INTEGER REFERENCES vendors(id),
    status TEXT NOT NULL,
    products_found INTEGER DEFAULT 0,
    products_updated INTEGER DEFAULT 0,
    error_message TEXT,
    duration_ms INTEGER,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""


def get_connection(db_path: str = DB_PATH) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    if db_path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_db(conn: sqlite3.Connection):
    conn.executescript(SCHEMA)
    conn.commit()


def upsert_vendor(conn: sqlite3.Connection, vendor: dict) -> int:
    """Insert or update a vendor by slug. Returns the vendor id."""
    config = vendor.get("scrape_config") or {}
    conn.execute(
        """INSERT INTO vendors (slug, name, website_url, scrape_config, is_active)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(slug) DO UPDATE SET
            name = excluded.name,
            website_url = excluded.website_url,
            scrape_config = excluded.scrape_config,
            is_active = excluded.is_active""",
        (
            vendor["slug"],
            vendor["name"],
            vendor["website_url"],
            json.dumps(config) if not isinstance(config, str) else config,
            bool(vendor.get("is_active", True)),
        ),
    )
    row = conn.execute(
        "SELECT id FROM vendors WHERE slug = ?", (vendor["slug"],)
    ).fetchone()
    return row["id"]


def get_vendors(conn: sqlite3.Connection, slug: Optional[str] = None) -> list[dict]:
    """Active vendors, or the vendor with ``slug`` regardless of is_active."""
    if slug:
        rows = conn.execute("SELECT * FROM vendors WHERE slug = ?", (slug,)).fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM vendors WHERE is_active = 1 ORDER BY name"
        ).fetchall()
    return [dict(r) for r in rows]


def upsert_price(conn: sqlite3.Connection, vendor_id, row: dict) -> int:
    """Insert or update a peptide_prices row keyed on (vendor_id, peptide_slug).

    Returns the row id.
    """
    now = now_utc()
    conn.execute(
        """INSERT INTO peptide_prices
            (vendor_id, peptide_name, peptide_slug, price, in_stock,
             quantity_mg, quantity_unit, price_per_mg, original_product_name,
             product_url, last_verified_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(vendor_id, peptide_slug) DO UPDATE SET
            peptide_name = excluded.peptide_name,
            price = excluded.price,
            in_stock = excluded.in_stock,
            quantity_mg = excluded.quantity_mg,
            quantity_unit = excluded.quantity_unit,
            price_per_mg = excluded.price_per_mg,
            original_product_name = excluded.original_product_name,
            product_url = excluded.product_url,
            last_verified_at = excluded.last_verified_at,
            updated_at = excluded.updated_at""",
        (
            vendor_id, row["peptide_name"], row["peptide_slug"], row["price"],
            row["in_stock"], row.get("quantity_mg"), row.get("quantity_unit"),
            row.get("price_per_mg"), row.get("original_product_name"),
            row.get("product_url"), now, now,
        ),
    )
    found = conn.execute(
        "SELECT id FROM peptide_prices WHERE vendor_id = ? AND peptide_slug = ?",
        (vendor_id, row["peptide_slug"]),
    ).fetchone()
    conn.commit()
    return found["id"]


def log_price(
    conn: sqlite3.Connection, peptide_price_id: int, price: float,
    quantity_mg: Optional[float] = None,
):
    conn.execute(
        "INSERT INTO price_history (peptide_price_id, price, quantity_mg) VALUES (?, ?, ?)",
        (peptide_price_id, price, quantity_mg),
    )
    conn.commit()


def insert_scrape_log(conn: sqlite3.Connection, log: dict):
    conn.execute(
        """INSERT INTO scrape_logs
            (vendor_id, status, products_found, products_updated,
             error_message, duration_ms, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (
            log["vendor_id"], log["status"], log["products_found"],
            log["products_updated"], log["error_message"], log["duration_ms"],
            now_utc(),
        ),
    )
    conn.commit()


def mark_vendor_scraped(conn: sqlite3.Connection, vendor_id):
    conn.execute(
        "UPDATE vendors SET last_scraped_at = ? WHERE id = ?", (now_utc(), vendor_id)
    )
    conn.commit()


def get_recent_scrape_logs(conn: sqlite3.Connection, limit: int = 50) -> list[dict]:
    rows = conn.execute(
        """SELECT l.*, v.name AS vendor_name
        FROM scrape_logs l LEFT JOIN vendors v ON v.id = l.vendor_id
        ORDER BY l.created_at DESC, l.id DESC
        LIMIT ?""",
        (limit,),
    ).fetchall()
    return [dict(r) for r in rows]
