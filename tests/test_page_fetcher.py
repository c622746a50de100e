"""Unit tests for PageFetcher."""
from unittest.mock import call

import pytest
import responses
from requests.exceptions import HTTPError, Timeout

from scraper.page_fetcher import FetchError, PageFetcher


PAGE_URL = "https://www.wayland.ma.us/calendar/month/2025-09"


class TestPageFetcher:
    """Test cases for PageFetcher class."""

    @responses.activate
    def test_fetch_page_success(self, no_sleep):
        """Test successful fetch returns the body and pauses once."""
        responses.add(responses.GET, PAGE_URL, body="<html>ok</html>", status=200)

        fetcher = PageFetcher(delay=1.0)
        html = fetcher.fetch_page(PAGE_URL)

        assert html == "<html>ok</html>"
        assert len(responses.calls) == 1
        no_sleep.assert_called_once_with(1.0)

    @responses.activate
    def test_fetch_page_sends_browser_headers(self, no_sleep):
        """Test requests carry browser-like headers."""
        responses.add(responses.GET, PAGE_URL, body="ok", status=200)

        PageFetcher().fetch_page(PAGE_URL)

        headers = responses.calls[0].request.headers
        assert headers['User-Agent'].startswith('Mozilla/5.0')
        assert 'text/html' in headers['Accept']
        assert headers['Accept-Language'] == 'en-US,en;q=0.5'

    def test_session_redirect_limit(self):
        """Test the session follows a bounded number of redirects."""
        fetcher = PageFetcher()
        assert fetcher.session.max_redirects == 5

    @responses.activate
    def test_fetch_page_with_retry_success(self, no_sleep):
        """Test retry logic succeeds after initial failures."""
        responses.add(responses.GET, PAGE_URL, body="Server Error", status=500)
        responses.add(responses.GET, PAGE_URL, body="Server Error", status=503)
        responses.add(responses.GET, PAGE_URL, body="<html>ok</html>", status=200)

        fetcher = PageFetcher(delay=1.0)
        html = fetcher.fetch_page(PAGE_URL)

        assert html == "<html>ok</html>"
        assert len(responses.calls) == 3
        # Backoff grows with the attempt, then the polite delay after success
        assert no_sleep.call_args_list == [call(2.0), call(3.0), call(1.0)]

    @responses.activate
    def test_fetch_page_all_retries_fail(self, no_sleep):
        """Test FetchError carries the last cause when all retries fail."""
        for _ in range(3):
            responses.add(responses.GET, PAGE_URL, body="Server Error", status=500)

        fetcher = PageFetcher(delay=1.0)

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch_page(PAGE_URL)

        assert len(responses.calls) == 3
        assert exc_info.value.url == PAGE_URL
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.cause, HTTPError)
        assert exc_info.value.__cause__ is exc_info.value.cause
        # No polite delay after a failure
        assert no_sleep.call_args_list == [call(2.0), call(3.0)]

    @responses.activate
    def test_fetch_page_timeout(self, no_sleep):
        """Test timeout handling."""
        for _ in range(3):
            responses.add(responses.GET, PAGE_URL, body=Timeout("Request timed out"))

        fetcher = PageFetcher()

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch_page(PAGE_URL)

        assert isinstance(exc_info.value.cause, Timeout)
        assert len(responses.calls) == 3

    @responses.activate
    def test_fetch_page_rejects_non_2xx(self, no_sleep):
        """Test that a non-2xx status without redirect counts as a failure."""
        responses.add(responses.GET, PAGE_URL, status=304)

        fetcher = PageFetcher()

        with pytest.raises(FetchError):
            fetcher.fetch_page(PAGE_URL, max_retries=1)

        assert len(responses.calls) == 1

    @responses.activate
    def test_fetch_page_max_retries_override(self, no_sleep):
        """Test the per-call retry budget overrides the default."""
        for _ in range(5):
            responses.add(responses.GET, PAGE_URL, body="Server Error", status=500)

        fetcher = PageFetcher(max_retries=3)

        with pytest.raises(FetchError):
            fetcher.fetch_page(PAGE_URL, max_retries=5)

        assert len(responses.calls) == 5

    def test_fetch_page_requires_absolute_url(self, no_sleep):
        """Test relative URLs are rejected before any request."""
        fetcher = PageFetcher()

        with pytest.raises(ValueError):
            fetcher.fetch_page("/calendar/month/2025-09")

        no_sleep.assert_not_called()
