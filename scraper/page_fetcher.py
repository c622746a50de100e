"""Resilient page fetcher with retry and polite rate limiting."""
import logging
import time
from typing import Optional
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)


BROWSER_HEADERS = {
    'User-Agent': (
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
    ),
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Accept-Encoding': 'gzip, deflate',
    'DNT': '1',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
    'Sec-Fetch-Dest': 'document',
    'Sec-Fetch-Mode': 'navigate',
    'Sec-Fetch-Site': 'none',
    'Cache-Control': 'max-age=0',
}


class FetchError(Exception):
    """Raised when every attempt to fetch a page has failed."""

    def __init__(self, url: str, attempts: int, cause: Optional[BaseException]):
        super().__init__(f"Failed to fetch {url} after {attempts} attempts: {cause}")
        self.url = url
        self.attempts = attempts
        self.cause = cause


class PageFetcher:
    """HTTP GET with retries, growing backoff and a post-fetch delay."""

    MAX_REDIRECTS = 5

    def __init__(self, timeout: float = 15, delay: float = 1.0, max_retries: int = 3):
        """
        Initialize the page fetcher.

        Args:
            timeout: HTTP request timeout in seconds (default: 15)
            delay: Polite pause after each successful fetch, also the
                base unit for retry backoff (default: 1.0)
            max_retries: Default number of attempts per page (default: 3)
        """
        self.timeout = timeout
        self.delay = delay
        self.max_retries = max_retries
        self.session = requests.Session()
        self.session.headers.update(BROWSER_HEADERS)
        self.session.max_redirects = self.MAX_REDIRECTS

    def fetch_page(self, url: str, max_retries: Optional[int] = None) -> str:
        """
        Fetch a page body, retrying on failure.

        Args:
            url: Absolute URL to fetch
            max_retries: Number of attempts (defaults to the fetcher setting)

        Returns:
            Response body as text

        Raises:
            ValueError: If url is not absolute
            FetchError: If all retry attempts fail
        """
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"URL must be absolute: {url!r}")

        attempts = max_retries if max_retries is not None else self.max_retries
        last_error: Optional[BaseException] = None

        for attempt in range(attempts):
            try:
                logger.info(f"Fetching {url} (attempt {attempt + 1}/{attempts})")
                response = self.session.get(url, timeout=self.timeout)
                if not 200 <= response.status_code < 300:
                    raise requests.HTTPError(
                        f"Unexpected status {response.status_code} for {url}",
                        response=response
                    )
                body = response.text
                time.sleep(self.delay)
                return body

            except requests.RequestException as e:
                last_error = e
                if attempt < attempts - 1:
                    pause = self.delay * (attempt + 2)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{attempts}): {e}. "
                        f"Retrying in {pause} seconds..."
                    )
                    time.sleep(pause)
                else:
                    logger.error(
                        f"All {attempts} retry attempts failed for {url}. Last error: {e}"
                    )

        raise FetchError(url, attempts, last_error) from last_error
