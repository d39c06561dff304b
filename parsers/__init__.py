"""Vendor storefront fetching and listing-page parsing."""

from parsers.base import VendorParser, merge_product, scrape_vendor
from parsers.fetcher import Fetcher

__all__ = ["Fetcher", "VendorParser", "merge_product", "scrape_vendor"]
