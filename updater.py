"""Price persistence: upserts, price history, and scrape status."""

import logging

from catalog import slug_for_name
from models import ScrapedProduct

logger = logging.getLogger(__name__)


def scrape_status(errors: list[str], products_found: int) -> str:
    """'success' without errors, 'partial' with errors and some products, else 'failed'."""
    if not errors:
        return "success"
    return "partial" if products_found > 0 else "failed"


def dedupe_by_slug(products: list[ScrapedProduct]) -> dict[str, ScrapedProduct]:
    """Collapse products to one per catalog slug, keeping the lowest price."""
    unique: dict[str, ScrapedProduct] = {}
    for product in products:
        slug = slug_for_name(product.name)
        if not slug:
            logger.warning(f"No catalog slug for '{product.name}', skipping")
            continue
        existing = unique.get(slug)
        if existing is None or product.price < existing.price:
            unique[slug] = product
    return unique


class PriceUpdater:
    """Writes scraped prices for one vendor and appends price history."""

    def __init__(self, store):
        self.store = store

    def update_prices(self, vendor_id, products: list[ScrapedProduct]) -> int:
        """Upsert every product and log its price. Returns rows updated."""
        updated = 0
        for slug, product in dedupe_by_slug(products).items():
            try:
                price_id = self.store.upsert_price(vendor_id, slug, product)
            except Exception as e:
                logger.warning(f"Upsert failed for {slug} (vendor {vendor_id}): {e}")
                continue

            updated += 1
            if price_id is None:
                logger.warning(f"Upserted {slug} but could not find its row id")
                continue
            try:
                self.store.log_price(price_id, product.price, product.quantity)
            except Exception as e:
                logger.warning(f"Price history insert failed for {slug}: {e}")
        return updated


def update_prices(store, vendor_id, products: list[ScrapedProduct]) -> int:
    return PriceUpdater(store).update_prices(vendor_id, products)
