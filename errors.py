"""Exceptions raised by the price scraper."""


class ScraperError(Exception):
    """Base class for scraper failures."""


class ScrapeConfigError(ScraperError):
    """A vendor's scrape_config is missing required selectors."""


class FetchError(ScraperError):
    """A listing page could not be retrieved."""

    def __init__(self, status_code: int, reason: str = ""):
        super().__init__(f"HTTP {status_code}: {reason}")
        self.status_code = status_code
        self.reason = reason


class VendorLookupError(ScraperError):
    """No vendors matched the run criteria."""
