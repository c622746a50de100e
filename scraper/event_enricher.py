"""Best-effort enrichment of calendar entries from their detail pages."""
import dataclasses
import logging
from typing import Optional, Sequence

from bs4 import BeautifulSoup

from processor.models import CalendarEntry
from scraper.page_fetcher import PageFetcher

logger = logging.getLogger(__name__)


class EventEnricher:
    """Fills in description and event type from an entry's detail page."""

    MAX_DESCRIPTION_LENGTH = 500

    DESCRIPTION_SELECTORS = (
        '.field-name-body .field-item',
        '.event-description',
        '.content',
    )
    EVENT_TYPE_SELECTORS = (
        '.field-name-field-event-type .field-item',
        '.event-type',
    )

    def __init__(self, fetcher: PageFetcher):
        self.fetcher = fetcher

    def enrich(self, entry: CalendarEntry) -> CalendarEntry:
        """
        Enrich an entry with data from its detail page.

        Never raises: on any failure the entry is returned unchanged.

        Args:
            entry: Candidate entry from the listing page

        Returns:
            New CalendarEntry with description/event_type set, or the
            original entry if nothing could be extracted
        """
        if not entry.source_url:
            return entry

        try:
            html = self.fetcher.fetch_page(entry.source_url)
            if not html or not html.strip():
                logger.warning(f"Empty detail page for {entry.source_url}")
                return entry

            soup = BeautifulSoup(html, 'html.parser')
            description = self._first_text(soup, self.DESCRIPTION_SELECTORS)
            event_type = self._first_text(soup, self.EVENT_TYPE_SELECTORS)
        except Exception as e:
            logger.warning(
                f"Failed to fetch event details for {entry.source_url}: {e}",
                extra={'error_type': type(e).__name__}
            )
            return entry

        if not description and not event_type:
            logger.debug(f"No detail fields found for {entry.source_url}")
            return entry

        changes = {}
        if description:
            changes['description'] = description[:self.MAX_DESCRIPTION_LENGTH]
        if event_type:
            changes['event_type'] = event_type
        return dataclasses.replace(entry, **changes)

    def _first_text(self, soup: BeautifulSoup, selectors: Sequence[str]) -> Optional[str]:
        for selector in selectors:
            text = ' '.join(
                element.get_text(' ', strip=True) for element in soup.select(selector)
            ).strip()
            if text:
                return text
        return None
