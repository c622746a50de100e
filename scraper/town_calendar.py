"""Monthly listing page parser for the town meeting calendar."""
import calendar
import logging
import re
from typing import Callable, Iterator, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

from processor.models import CalendarEntry, utc_now_iso
from scraper.page_fetcher import PageFetcher

logger = logging.getLogger(__name__)


TIME_PATTERN = re.compile(r'(\d{1,2}:\d{2}[ap]m)', re.IGNORECASE)
DAY_PREFIX_PATTERN = re.compile(r'^\s*(\d{1,2})\s')

# Grid cells padding the month with days from the previous/next month
ADJACENT_MONTH_CLASSES = {'other-month', 'prev-month', 'next-month', 'empty'}

DayContainers = Iterator[Tuple[str, Tag]]


def date_box_days(soup: BeautifulSoup) -> DayContainers:
    """Yield (day text, container) for each `.date-box` in the month grid."""
    for day_element in soup.select('.calendar-month .date-box'):
        day_number = day_element.select_one('.day-number')
        if day_number is None:
            continue
        yield day_number.get_text(strip=True), day_element


def table_cell_days(soup: BeautifulSoup) -> DayContainers:
    """Yield (day text, cell) for calendar table cells starting with a day number."""
    for cell in soup.select('.calendar td'):
        match = DAY_PREFIX_PATTERN.match(cell.get_text())
        if match:
            yield match.group(1), cell


class TownCalendarParser:
    """Scraper for the town's monthly meeting calendar."""

    BASE_URL = "https://www.wayland.ma.us"
    CALENDAR_PATH = "/calendar/month/"

    def __init__(
        self,
        fetcher: PageFetcher,
        base_url: str = BASE_URL,
        calendar_path: str = CALENDAR_PATH
    ):
        """
        Initialize the calendar parser.

        Args:
            fetcher: PageFetcher used to download listing pages
            base_url: Site root used to resolve relative links
            calendar_path: Path of the month view, followed by YYYY-MM
        """
        self.fetcher = fetcher
        self.base_url = base_url.rstrip('/')
        self.calendar_url = urljoin(self.base_url + '/', calendar_path.lstrip('/'))
        # Tried in order until one yields entries
        self.strategies: List[Tuple[str, Callable[[BeautifulSoup], DayContainers]]] = [
            ('date-box', date_box_days),
            ('table-cell', table_cell_days),
        ]

    def month_url(self, year: int, month: int) -> str:
        """Build the listing page URL for a month."""
        return f"{self.calendar_url}{year}-{month:02d}"

    def scrape_month(self, year: int, month: int) -> List[CalendarEntry]:
        """
        Fetch and parse one month's listing page.

        Raises:
            FetchError: If the listing page cannot be fetched
        """
        html = self.fetcher.fetch_page(self.month_url(year, month))
        return self.parse_month(html, year, month)

    def parse_month(self, html: str, year: int, month: int) -> List[CalendarEntry]:
        """
        Parse candidate entries from a month listing page.

        Args:
            html: Listing page HTML
            year: Calendar year of the page
            month: Calendar month of the page (1-12)

        Returns:
            List of CalendarEntry candidates, empty if no strategy matched
        """
        soup = BeautifulSoup(html, 'html.parser')
        entries: List[CalendarEntry] = []

        for name, find_days in self.strategies:
            entries = self._extract(find_days(soup), year, month)
            if entries:
                logger.info(
                    f"Found {len(entries)} events for {year}-{month:02d} "
                    f"using {name} strategy"
                )
                return entries
            logger.debug(f"Strategy {name} found no events for {year}-{month:02d}")

        logger.info(f"Found 0 events for {year}-{month:02d}")
        return entries

    def _extract(self, days: DayContainers, year: int, month: int) -> List[CalendarEntry]:
        entries = []
        days_in_month = calendar.monthrange(year, month)[1]

        for day_text, container in days:
            if ADJACENT_MONTH_CLASSES.intersection(container.get('class') or []):
                continue
            if not day_text.isdigit() or not 1 <= int(day_text) <= days_in_month:
                logger.debug(f"Skipping day {day_text!r} outside {year}-{month:02d}")
                continue

            date = f"{year}-{month:02d}-{int(day_text):02d}"
            for link in container.find_all('a'):
                entry = self.parse_event_link(link, date)
                if entry:
                    entries.append(entry)

        return entries

    def parse_event_link(self, link: Tag, date: str) -> Optional[CalendarEntry]:
        """
        Build a candidate entry from one event link.

        Args:
            link: Anchor element inside a day container
            date: ISO date (YYYY-MM-DD) of the day container

        Returns:
            CalendarEntry or None if the link has no href or title
        """
        href = (link.get('href') or '').strip()
        text = link.get_text(' ', strip=True)
        if not href or not text:
            return None

        time, title = self.split_time(text)
        if not title:
            return None

        source_url = urljoin(self.base_url + '/', href)

        return CalendarEntry(
            title=title,
            date=date,
            time=time,
            department=self._department_from_url(source_url),
            source_url=source_url,
            scraped_at=utc_now_iso()
        )

    def split_time(self, text: str) -> Tuple[Optional[str], str]:
        """
        Split a time token off link text.

        Args:
            text: Link text (e.g., "6:00pm Select Board")

        Returns:
            Tuple of (time or None, title)
        """
        match = TIME_PATTERN.search(text)
        if not match:
            return None, text.strip()
        title = text[:match.start()] + text[match.end():]
        return match.group(1), title.strip()

    def _department_from_url(self, url: str) -> Optional[str]:
        segments = [part for part in urlparse(url).path.split('/') if part]
        return segments[0] if segments else None
