"""Storage backends: local SQLite or the hosted Supabase project."""

import logging
import sqlite3
from typing import Optional

import db
from config import DB_PATH, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)


def price_row(slug: str, product) -> dict:
    """Column values for a peptide_prices upsert."""
    return {
        "peptide_name": product.name,
        "peptide_slug": slug,
        "price": product.price,
        "in_stock": product.in_stock,
        "quantity_mg": product.quantity or None,
        "quantity_unit": product.unit or None,
        "price_per_mg": product.price_per_mg or None,
        "original_product_name": product.original_name or None,
        "product_url": product.url or None,
    }


class SQLiteStore:
    """Store backed by a sqlite3 connection (see db.py for the schema)."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @classmethod
    def open(cls, db_path: str = DB_PATH) -> "SQLiteStore":
        conn = db.get_connection(db_path)
        db.init_db(conn)
        return cls(conn)

    def get_vendors(self, vendor_slug: Optional[str] = None) -> list[dict]:
        return db.get_vendors(self.conn, vendor_slug)

    def upsert_price(self, vendor_id, slug: str, product) -> Optional[int]:
        return db.upsert_price(self.conn, vendor_id, price_row(slug, product))

    def log_price(self, peptide_price_id: int, price: float, quantity_mg: Optional[float] = None):
        db.log_price(self.conn, peptide_price_id, price, quantity_mg)

    def insert_scrape_log(self, log: dict):
        db.insert_scrape_log(self.conn, log)

    def mark_vendor_scraped(self, vendor_id):
        db.mark_vendor_scraped(self.conn, vendor_id)

    def recent_scrape_logs(self, limit: int = 50) -> list[dict]:
        return db.get_recent_scrape_logs(self.conn, limit)

    def close(self):
        self.conn.close()


class SupabaseStore:
    """Store backed by a supabase-py client using the service-role key."""

    def __init__(self, client):
        self.client = client

    @classmethod
    def connect(cls, url: str = SUPABASE_URL, key: str = SUPABASE_SERVICE_ROLE_KEY) -> "SupabaseStore":
        from supabase import create_client

        return cls(create_client(url, key))

    def get_vendors(self, vendor_slug: Optional[str] = None) -> list[dict]:
        query = self.client.table("vendors").select("*")
        if vendor_slug:
            query = query.eq("slug", vendor_slug)
        else:
            query = query.eq("is_active", True)
        resp = query.execute()
        return resp.data or []

    def upsert_price(self, vendor_id, slug: str, product) -> Optional[int]:
        now = db.now_utc()
        payload = {
            "vendor_id": vendor_id,
            **price_row(slug, product),
            "last_verified_at": now,
            "updated_at": now,
        }
        self.client.table("peptide_prices").upsert(
            payload, on_conflict="vendor_id,peptide_slug"
        ).execute()
        resp = (
            self.client.table("peptide_prices")
            .select("id")
            .eq("vendor_id", vendor_id)
            .eq("peptide_slug", slug)
            .limit(1)
            .execute()
        )
        return resp.data[0]["id"] if resp.data else None

    def log_price(self, peptide_price_id: int, price: float, quantity_mg: Optional[float] = None):
        self.client.table("price_history").insert({
            "peptide_price_id": peptide_price_id,
            "price": price,
            "quantity_mg": quantity_mg,
        }).execute()

    def insert_scrape_log(self, log: dict):
        self.client.table("scrape_logs").insert(log).execute()

    def mark_vendor_scraped(self, vendor_id):
        self.client.table("vendors").update(
            {"last_scraped_at": db.now_utc()}
        ).eq("id", vendor_id).execute()

    def recent_scrape_logs(self, limit: int = 50) -> list[dict]:
        resp = (
            self.client.table("scrape_logs")
            .select("*, vendors:vendor_id (name)")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return resp.data or []

    def close(self):
        pass


def get_store():
    """Supabase when credentials are configured, otherwise local SQLite."""
    if SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY:
        logger.info("Using Supabase store")
        return SupabaseStore.connect()
    logger.info(f"Using SQLite store at {DB_PATH}")
    return SQLiteStore.open()
