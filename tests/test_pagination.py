"""
Tests for multi-page scraping of a single vendor.
"""
import requests

from conftest import FakeFetcher, make_response, make_vendor, product_html
from parsers.base import VendorParser, scrape_vendor

BASE = "https://vendor.test/peptides"


def page(n, base=BASE):
    return base if n == 1 else f"{base}?product-page={n}"


class TestPageUrls:

    def test_first_page_is_default_listing(self):
        parser = VendorParser(make_vendor(website_url="https://vendor.test/"), FakeFetcher())
        assert parser.start_url(parser.vendor.selector_config()) == BASE

    def test_explicit_search_url(self):
        vendor = make_vendor(scrape_config={
            "productSelector": ".product", "nameSelector": ".title",
            "priceSelector": ".price", "searchUrl": "https://vendor.test/shop?cat=5",
        })
        parser = VendorParser(vendor, FakeFetcher())
        assert parser.start_url(vendor.selector_config()) == "https://vendor.test/shop?cat=5"

    def test_page_param_separator(self):
        assert VendorParser._add_page_param(BASE, 1) == BASE
        assert VendorParser._add_page_param(BASE, 2) == f"{BASE}?product-page=2"
        assert VendorParser._add_page_param(f"{BASE}?sort=asc", 3) == f"{BASE}?sort=asc&product-page=3"


class TestPagination:

    def test_single_page_end_to_end(self, no_sleep):
        fetcher = FakeFetcher({BASE: product_html([
            ("BPC-157 5mg", "$48.00"),
            ("Random Supplement", "$19.99"),
            ("TB-500 2mg", "$52.00 - $60.00", '<span class="sold-out">Sold Out</span>'),
        ])})
        outcome = scrape_vendor(make_vendor(), fetcher)
        assert outcome.errors == []
        assert [(p.name, p.price, p.in_stock) for p in outcome.products] == [
            ("BPC-157", 48.00, True),
            ("TB-500", 52.00, False),
        ]
        assert fetcher.calls == [BASE]
        assert no_sleep == []

    def test_stops_when_second_page_empty(self, no_sleep):
        fetcher = FakeFetcher({
            page(1): product_html([("BPC-157 5mg", "$48.00")], next_link=True),
            page(2): "<html><body><p>No products</p></body></html>",
        })
        outcome = scrape_vendor(make_vendor(), fetcher)
        assert fetcher.calls == [page(1), page(2)]
        assert [p.name for p in outcome.products] == ["BPC-157"]
        assert outcome.errors == []
        assert no_sleep == [1.5]

    def test_dedup_across_pages_keeps_lowest(self, no_sleep):
        fetcher = FakeFetcher({
            page(1): product_html([("Semaglutide 5mg", "$249.00")], next_link=True),
            page(2): product_html([("Semaglutide 5mg", "$239.50")]),
        })
        outcome = scrape_vendor(make_vendor(), fetcher)
        assert len(outcome.products) == 1
        assert outcome.products[0].price == 239.50

    def test_page_cap(self, no_sleep):
        pages = {page(n): product_html([("Semax 5mg", f"${30 + n}")], next_link=True) for n in range(1, 8)}
        fetcher = FakeFetcher(pages)
        outcome = scrape_vendor(make_vendor(), fetcher)
        assert len(fetcher.calls) == 5
        assert outcome.products[0].price == 31.0

    def test_next_page_detected_from_text(self, no_sleep):
        html = product_html([("Selank 5mg", "$20")]).replace(
            "</body>", "<div>Showing page 1, next: product-page=2</div></body>"
        )
        fetcher = FakeFetcher({page(1): html, page(2): product_html([("Semax 5mg", "$25")])})
        outcome = scrape_vendor(make_vendor(), fetcher)
        assert fetcher.calls == [page(1), page(2)]
        assert {p.name for p in outcome.products} == {"Selank", "Semax"}

    def test_no_next_signal_stops(self, no_sleep):
        fetcher = FakeFetcher({page(1): product_html([("Selank 5mg", "$20")])})
        scrape_vendor(make_vendor(), fetcher)
        assert fetcher.calls == [page(1)]

    def test_first_page_http_failure_is_fatal(self, no_sleep):
        fetcher = FakeFetcher({page(1): make_response(503)})
        outcome = scrape_vendor(make_vendor(), fetcher)
        assert outcome.products == []
        assert outcome.errors == ["Failed: HTTP 503: Service Unavailable"]

    def test_later_page_http_failure_keeps_products(self, no_sleep):
        fetcher = FakeFetcher({
            page(1): product_html([("BPC-157 5mg", "$48.00")], next_link=True),
            page(2): make_response(500),
        })
        outcome = scrape_vendor(make_vendor(), fetcher)
        assert [p.name for p in outcome.products] == ["BPC-157"]
        assert outcome.errors == []

    def test_exception_on_later_page_recorded_with_products(self, no_sleep):
        fetcher = FakeFetcher(
            {page(1): product_html([
                ("BPC-157 5mg", "$48"), ("TB-500 5mg", "$50"), ("Semax 5mg", "$25"),
            ], next_link=True)},
            errors={page(2): requests.ConnectionError("connection reset")},
        )
        outcome = scrape_vendor(make_vendor(), fetcher)
        assert len(outcome.products) == 3
        assert len(outcome.errors) == 1
        assert "connection reset" in outcome.errors[0]

    def test_missing_selectors_fail_without_fetching(self, no_sleep):
        fetcher = FakeFetcher()
        vendor = make_vendor(scrape_config={"productSelector": ".product"})
        outcome = scrape_vendor(vendor, fetcher)
        assert fetcher.calls == []
        assert outcome.products == []
        assert outcome.errors[0].startswith("Failed: Missing selector configuration")

    def test_timeout_recorded_not_raised(self, no_sleep):
        fetcher = FakeFetcher(errors={page(1): requests.Timeout("timed out")})
        outcome = scrape_vendor(make_vendor(), fetcher)
        assert outcome.errors == ["Failed: timed out"]


class TestEmptyFirstPage:

    def test_bot_detection(self, no_sleep):
        html = "<html><body><form id='challenge-form'>Verify you are human</form></body></html>"
        outcome = scrape_vendor(make_vendor(), FakeFetcher({BASE: html}))
        assert outcome.errors == ["Bot detection triggered on page 1"]

    def test_access_denied(self, no_sleep):
        html = "<html><body><h1>Access Denied</h1></body></html>"
        outcome = scrape_vendor(make_vendor(), FakeFetcher({BASE: html}))
        assert outcome.errors == ["Access Denied (403/406)"]

    def test_config_mismatch_hint(self, no_sleep):
        html = "<html><body><ul><li class='product'>BPC-157</li></ul></body></html>"
        vendor = make_vendor(scrape_config={
            "productSelector": ".card", "nameSelector": ".title", "priceSelector": ".price",
        })
        outcome = scrape_vendor(vendor, FakeFetcher({BASE: html}))
        assert len(outcome.errors) == 2
        assert outcome.errors[0].startswith("Config mismatch?")
        assert outcome.errors[1].startswith("No products found on page 1. Config: ")
        assert '"productSelector": ".card"' in outcome.errors[1]
