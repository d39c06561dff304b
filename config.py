"""Scraper configuration for peptide vendor price tracking."""

import os

REQUEST_TIMEOUT = 25  # seconds
MAX_RETRIES = 2  # retries after the first attempt
BACKOFF_BASE = 2.0  # seconds, doubled on each retry
PAGE_DELAY = 1.5  # seconds between listing pages
VENDOR_DELAY = 2.0  # seconds between vendors
MAX_PAGES = 5  # max listing pages per vendor per run
DEFAULT_LISTING_PATH = "/peptides"
PAGE_PARAM = "product-page"

SCRAPE_INTERVAL_MINUTES = int(os.getenv("SCRAPE_INTERVAL_MINUTES", "360"))
DB_PATH = os.getenv("DB_PATH", "peptide_prices.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
MONITOR_BUFFER_SIZE = 100

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

SCRAPING_API_KEY = os.getenv("SCRAPING_API_KEY", "")
SCRAPING_SERVICE_NAME = os.getenv("SCRAPING_SERVICE_NAME", "")  # 'zenrows' | 'scrapingant'

ALLOWED_ORIGIN = os.getenv("ALLOWED_ORIGIN", "*")

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Mobile/15E148 Safari/604.1",
]

# Sites behind heavy bot protection always go through the browser-mode proxy
PROXY_BROWSER_DOMAINS = [
    "swisschems.is",
    "biotechpeptides.com",
    "corepeptides.com",
    "skyepeptides.com",
]
PROXY_WAIT_SELECTOR = ".product,.product-item,.product-card,li.product,.c-product-card"

# Vendor slugs skipped in full runs (still scraped when requested by slug)
EXCLUDED_VENDORS: list[str] = []

OUT_OF_STOCK_SELECTOR = (
    ".out-of-stock, .soldout, .sold-out, [class*=\"unavailable\"], .stock.out-of-stock"
)
OUT_OF_STOCK_PHRASES = ("out of stock", "sold out")
NEXT_PAGE_SELECTOR = (
    "a.next, a[rel=\"next\"], .pagination a:last-child, a[aria-label=\"Next\"]"
)
FALLBACK_PRODUCT_SELECTOR = "li.product, .product-item, .product-card"
