"""HTTP fetch layer: user-agent rotation, retries with backoff, proxy APIs."""

import logging
import random
import time
from typing import Optional
from urllib.parse import quote, urlparse

import requests

from config import (
    BACKOFF_BASE,
    MAX_RETRIES,
    PROXY_BROWSER_DOMAINS,
    PROXY_WAIT_SELECTOR,
    REQUEST_TIMEOUT,
    SCRAPING_API_KEY,
    SCRAPING_SERVICE_NAME,
    USER_AGENTS,
)

logger = logging.getLogger(__name__)

_ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
    "image/webp,image/apng,*/*;q=0.8"
)


def build_browser_headers(url: str, user_agent: str) -> dict[str, str]:
    """Browser-like headers for a direct request to ``url``."""
    parsed = urlparse(url)
    headers = {
        "User-Agent": user_agent,
        "Accept": _ACCEPT,
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": f"{parsed.scheme}://{parsed.netloc}",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Upgrade-Insecure-Requests": "1",
    }
    if "Chrome" in user_agent:
        headers["Sec-Ch-Ua"] = '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"'
        headers["Sec-Ch-Ua-Mobile"] = "?0"
        headers["Sec-Ch-Ua-Platform"] = '"macOS"'
    return headers


class Fetcher:
    """Fetches pages directly or through a scraping proxy API."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        api_key: Optional[str] = None,
        service: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        backoff_base: float = BACKOFF_BASE,
    ):
        self.session = session or requests.Session()
        self.api_key = SCRAPING_API_KEY if api_key is None else api_key
        self.service = (SCRAPING_SERVICE_NAME if service is None else service).lower()
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base

    def proxy_url(self, url: str) -> Optional[str]:
        """Rewrite ``url`` into the configured proxy API envelope, if any."""
        if not self.api_key:
            return None
        encoded = quote(url, safe="")
        host = urlparse(url).netloc.lower()
        force_browser = any(domain in host for domain in PROXY_BROWSER_DOMAINS)

        if self.service == "zenrows" and not force_browser:
            return (
                f"https://api.zenrows.com/v1/?apikey={self.api_key}&url={encoded}"
                "&js_render=true&premium_proxy=true"
            )
        if self.service == "scrapingant" or force_browser:
            return (
                f"https://api.scrapingant.com/v2/general?x-api-key={self.api_key}"
                f"&url={encoded}&browser=true"
                f"&wait_for_selector={quote(PROXY_WAIT_SELECTOR, safe='')}"
            )
        return None

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after the given 0-based attempt."""
        return self.backoff_base * (2 ** attempt)

    def fetch_with_retry(
        self,
        url: str,
        retries: Optional[int] = None,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> requests.Response:
        """GET ``url`` with retries on 429/5xx, timeouts and connection errors.

        Returns the last response once the retry budget is spent, even if it
        failed. Request exceptions are raised after the last attempt.

        ``timeout`` bounds the connect and each socket read separately, not
        the whole transfer: a server trickling bytes can hold one attempt
        longer than ``timeout`` seconds.
        """
        retries = self.max_retries if retries is None else retries
        attempts = retries + 1

        for attempt in range(attempts):
            user_agent = random.choice(USER_AGENTS)
            target = self.proxy_url(url)
            if target:
                headers: dict[str, str] = {}
                via = f"via {self.service or 'proxy'}"
            else:
                target = url
                headers = build_browser_headers(url, user_agent)
                headers.update(extra_headers or {})
                via = "direct"

            logger.info(f"Fetching: {url} ({via}), attempt {attempt + 1}/{attempts}")
            try:
                resp = self.session.get(target, headers=headers, timeout=self.timeout)
            except requests.RequestException as e:
                if isinstance(e, requests.Timeout):
                    logger.warning(f"Timed out after {self.timeout}s: {url}")
                if attempt >= retries:
                    raise
                wait = self.backoff(attempt)
                logger.warning(f"Retrying in {wait:.1f}s due to error: {e}")
                time.sleep(wait)
                continue

            if resp.status_code == 429 or resp.status_code >= 500:
                if attempt < retries:
                    wait = self.backoff(attempt)
                    logger.info(f"Retrying in {wait:.1f}s... (Status: {resp.status_code})")
                    time.sleep(wait)
                    continue
            return resp

        # Unreachable: the last attempt always returns or raises
        raise RuntimeError(f"Retry loop exited without a response for {url}")
