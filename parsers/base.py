"""Selector-driven listing parser for peptide vendor storefronts."""

import json
import logging
import re
import time
from typing import Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from catalog import find_matching_peptide
from config import (
    DEFAULT_LISTING_PATH,
    FALLBACK_PRODUCT_SELECTOR,
    MAX_PAGES,
    NEXT_PAGE_SELECTOR,
    OUT_OF_STOCK_PHRASES,
    OUT_OF_STOCK_SELECTOR,
    PAGE_DELAY,
    PAGE_PARAM,
)
from errors import FetchError, ScrapeConfigError
from models import ScrapeConfig, ScrapedProduct, ScrapeOutcome, Vendor
from parsers.fetcher import Fetcher

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_QUANTITY_RE = re.compile(r"([\d.]+)[\s-]*(mg|mcg|iu|ml)\b", re.IGNORECASE)
_BOT_MARKERS = ("cloudflare", "challenge-form", "verify you are human")


class VendorParser:
    """Scrapes one vendor's listing pages using its configured selectors."""

    def __init__(
        self,
        vendor: Vendor,
        fetcher: Optional[Fetcher] = None,
        max_pages: int = MAX_PAGES,
        page_delay: float = PAGE_DELAY,
    ):
        self.vendor = vendor
        self.fetcher = fetcher or Fetcher()
        self.max_pages = max_pages
        self.page_delay = page_delay

    @property
    def site_name(self) -> str:
        return self.vendor.slug

    def start_url(self, config: ScrapeConfig) -> str:
        if config.search_url:
            return config.search_url
        return f"{self.vendor.website_url.rstrip('/')}{DEFAULT_LISTING_PATH}"

    def get_all_pages(self) -> ScrapeOutcome:
        """Scrape up to ``max_pages`` listing pages. Never raises.

        Products are merged across pages (lowest price per peptide wins);
        failures are returned as error strings.
        """
        outcome = ScrapeOutcome()
        try:
            config = self.vendor.selector_config()
            base_url = self.start_url(config)

            for page_num in range(1, self.max_pages + 1):
                page_url = self._add_page_param(base_url, page_num)
                logger.info(f"[{self.site_name}] Scraping page {page_num}: {page_url}")

                resp = self.fetcher.fetch_with_retry(page_url, extra_headers=config.headers)
                if not resp.ok:
                    if page_num == 1:
                        raise FetchError(resp.status_code, resp.reason or "")
                    logger.warning(
                        f"[{self.site_name}] Page {page_num} returned HTTP "
                        f"{resp.status_code}, stopping"
                    )
                    break

                html = resp.text
                soup = BeautifulSoup(html, "lxml")
                items = soup.select(config.product_selector)
                logger.info(f"[{self.site_name}] Page {page_num}: found {len(items)} elements")

                if not items:
                    if page_num == 1 and not outcome.products:
                        outcome.errors.extend(self._diagnose_empty_page(soup, html, config))
                    break

                for product in self.parse_product_list(items, config):
                    merge_product(outcome.products, product)

                if not self.has_next_page(soup, page_num):
                    break
                time.sleep(self.page_delay)

            logger.info(
                f"[{self.site_name}] Total products found: {len(outcome.products)}"
            )
        except Exception as e:
            # Config errors, page-1 HTTP failures and exhausted retries all land here
            outcome.errors.append(f"Failed: {e}")
            log = logger.warning if isinstance(e, (ScrapeConfigError, FetchError)) else logger.error
            log(f"[{self.site_name}] Error scraping {self.vendor.name}: {e}")
        return outcome

    def parse_product_list(self, items: list[Tag], config: ScrapeConfig) -> list[ScrapedProduct]:
        products = []
        for item in items:
            try:
                product = self._parse_item(item, config)
                if product:
                    products.append(product)
            except Exception as e:
                logger.debug(f"[{self.site_name}] Skipping malformed product node: {e}")
        return products

    def _parse_item(self, item: Tag, config: ScrapeConfig) -> Optional[ScrapedProduct]:
        name = self._extract_name(item, config.name_selector)
        if not name:
            return None

        peptide = find_matching_peptide(name)
        if not peptide:
            return None

        price_el = item.select_one(config.price_selector)
        price = self.extract_price(price_el.get_text() if price_el else "")
        if price is None or price <= 0:
            return None
        price = round(price, 2)

        quantity, unit = self.extract_quantity(name)
        price_per_mg = None
        if quantity and quantity > 0 and unit == "mg":
            price_per_mg = price / quantity

        return ScrapedProduct(
            name=peptide.name,
            price=price,
            in_stock=not self.detect_out_of_stock(item),
            url=self._extract_product_url(item),
            original_name=name,
            quantity=quantity,
            unit=unit,
            price_per_mg=price_per_mg,
        )

    @staticmethod
    def _extract_name(item: Tag, name_selector: str) -> str:
        name_el = item.select_one(name_selector)
        name = name_el.get_text(" ", strip=True) if name_el else ""
        if not name:
            link = item.select_one("a")
            if link:
                name = (link.get("title") or "").strip() or link.get_text(" ", strip=True)
        return name

    def _extract_product_url(self, item: Tag) -> Optional[str]:
        link = item.select_one("a[href]")
        if not link:
            return None
        href = link["href"].strip()
        if not href:
            return None
        if href.startswith("http"):
            return href
        parsed = urlparse(self.vendor.website_url)
        if not parsed.scheme or not parsed.netloc:
            logger.debug(f"[{self.site_name}] Invalid vendor URL: {self.vendor.website_url}")
            return None
        return urljoin(f"{parsed.scheme}://{parsed.netloc}/", href)

    # --- Shared extraction helpers ---

    @staticmethod
    def extract_price(text: str) -> Optional[float]:
        """Parse messy price text into a float.

        Ranges keep the lower bound:
          'From $129.99 - $199.99' → 129.99
          '$1,250.00'              → 1250.0
          'Contact us'             → None
        """
        if not text:
            return None
        cleaned = re.sub(r"[^0-9.]", "", text.split("-")[0])
        match = _NUMBER_RE.match(cleaned)
        return float(match.group(0)) if match else None

    @staticmethod
    def extract_quantity(product_name: str) -> tuple[Optional[float], Optional[str]]:
        """Pull the vial size out of a product name.

          'BPC-157 5MG'     → (5.0, 'mg')
          'GHRP-2 5000mcg'  → (5.0, 'mg')
          'HGH 10 iu'       → (10.0, 'iu')
        """
        if not product_name:
            return None, None
        match = _QUANTITY_RE.search(product_name)
        if not match:
            return None, None
        try:
            quantity = float(match.group(1))
        except ValueError:
            return None, None
        unit = match.group(2).lower()
        if unit == "mcg":
            quantity = quantity / 1000
            unit = "mg"
        return quantity, unit

    @staticmethod
    def detect_out_of_stock(item: Tag) -> bool:
        if item.select_one(OUT_OF_STOCK_SELECTOR):
            return True
        text = item.get_text(" ").lower()
        return any(phrase in text for phrase in OUT_OF_STOCK_PHRASES)

    @staticmethod
    def has_next_page(soup: BeautifulSoup, page_num: int) -> bool:
        if soup.select_one(NEXT_PAGE_SELECTOR):
            return True
        body = soup.body or soup
        text = body.get_text()
        return f"page={page_num + 1}" in text or f"{PAGE_PARAM}={page_num + 1}" in text

    @staticmethod
    def _add_page_param(url: str, page: int) -> str:
        """Append ?product-page=N (or &product-page=N) for pages after the first."""
        if page <= 1:
            return url
        sep = "&" if "?" in url else "?"
        return f"{url}{sep}{PAGE_PARAM}={page}"

    def _diagnose_empty_page(
        self, soup: BeautifulSoup, html: str, config: ScrapeConfig
    ) -> list[str]:
        """Explain why page 1 had no product nodes."""
        lower_html = html.lower()
        if any(marker in lower_html for marker in _BOT_MARKERS):
            logger.warning(f"[{self.site_name}] Bot detection suspected")
            return ["Bot detection triggered on page 1"]
        if "access denied" in lower_html:
            return ["Access Denied (403/406)"]

        errors = []
        fallback = soup.select(FALLBACK_PRODUCT_SELECTOR)
        if fallback:
            logger.info(
                f"[{self.site_name}] Found {len(fallback)} products using fallback selectors"
            )
            errors.append(
                "Config mismatch? Found products via fallback selectors "
                f"but not '{config.product_selector}'"
            )
        logger.info(f"[{self.site_name}] No elements found. HTML preview: {html[:300]!r}")
        errors.append(f"No products found on page 1. Config: {json.dumps(self.vendor.scrape_config)}")
        return errors


def merge_product(products: list[ScrapedProduct], product: ScrapedProduct) -> None:
    """Add ``product`` in place, keeping the lower price per peptide."""
    for i, existing in enumerate(products):
        if existing.name == product.name:
            if product.price < existing.price:
                products[i] = product
            return
    products.append(product)


def scrape_vendor(vendor: Vendor, fetcher: Optional[Fetcher] = None) -> ScrapeOutcome:
    """Scrape all listing pages of one vendor."""
    return VendorParser(vendor, fetcher).get_all_pages()
