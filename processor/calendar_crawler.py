"""Month-by-month crawl of the town calendar."""
import logging
from datetime import date
from typing import Iterator, Optional

from processor.models import CalendarEntry, CrawlResult, ScrapingProgress
from processor.progress_reporter import ProgressCallback
from scraper.event_enricher import EventEnricher
from scraper.town_calendar import TownCalendarParser
from storage.entry_store import EntryStore

logger = logging.getLogger(__name__)


def iter_months(start_date: date, end_date: date) -> Iterator[date]:
    """
    Yield the first day of every calendar month touched by a date range.

    Args:
        start_date: First day of the range
        end_date: Last day of the range (inclusive)

    Returns:
        Iterator of month start dates in ascending order
    """
    current = start_date.replace(day=1)
    while current <= end_date:
        yield current
        if current.month == 12:
            current = current.replace(year=current.year + 1, month=1)
        else:
            current = current.replace(month=current.month + 1)


class CalendarCrawler:
    """Crawls listing pages, enriches entries and stores them."""

    def __init__(
        self,
        parser: TownCalendarParser,
        enricher: EventEnricher,
        storage: EntryStore
    ):
        self.parser = parser
        self.enricher = enricher
        self.storage = storage

    def crawl(
        self,
        start_date: date,
        end_date: date,
        progress_callback: Optional[ProgressCallback] = None
    ) -> CrawlResult:
        """
        Crawl every month between start_date and end_date.

        Failures of a single month or entry are logged and reported
        through the progress callback; the crawl itself always completes.

        Args:
            start_date: First day of the range
            end_date: Last day of the range (inclusive)
            progress_callback: Optional callable receiving ScrapingProgress

        Returns:
            CrawlResult with counts for the whole crawl
        """
        logger.info(f"Starting crawl from {start_date} to {end_date}")
        self.storage.init()
        result = CrawlResult()

        for month_start in iter_months(start_date, end_date):
            month_label = month_start.strftime('%B %Y')
            result.months_visited.append(month_label)
            self._report(progress_callback, ScrapingProgress(
                current_month=month_label,
                total_entries=result.total_entries,
                current_entries=0,
                is_complete=False
            ))

            try:
                entries = self.parser.scrape_month(month_start.year, month_start.month)
            except Exception as e:
                error_msg = f"Error scraping {month_label}: {e}"
                logger.error(error_msg, exc_info=True)
                result.errors.append(error_msg)
                self._report(progress_callback, ScrapingProgress(
                    current_month=month_label,
                    total_entries=result.total_entries,
                    current_entries=0,
                    is_complete=False,
                    error=error_msg
                ))
                continue

            self._store_month(entries, month_label, result, progress_callback)

        self._report(progress_callback, ScrapingProgress(
            current_month='Complete',
            total_entries=result.total_entries,
            current_entries=result.total_entries,
            is_complete=True
        ))

        logger.info(
            f"Crawl complete. Total entries: {result.total_entries}",
            extra={
                'months_visited': len(result.months_visited),
                'duplicates': result.duplicates,
                'failed_inserts': result.failed_inserts,
                'month_errors': len(result.errors)
            }
        )
        return result

    def _store_month(
        self,
        entries: list[CalendarEntry],
        month_label: str,
        result: CrawlResult,
        progress_callback: Optional[ProgressCallback]
    ) -> None:
        month_entries = 0

        for entry in entries:
            detailed_entry = self.enricher.enrich(entry)

            try:
                entry_id = self.storage.insert_entry(detailed_entry)
            except Exception as e:
                result.failed_inserts += 1
                logger.error(
                    f"Error inserting entry '{detailed_entry.title}' "
                    f"on {detailed_entry.date}: {e}",
                    extra={'error_type': type(e).__name__}
                )
                continue

            if entry_id is None:
                result.duplicates += 1
                logger.debug(f"Entry '{detailed_entry.title}' already stored")
                continue

            month_entries += 1
            result.total_entries += 1
            self._report(progress_callback, ScrapingProgress(
                current_month=month_label,
                total_entries=result.total_entries,
                current_entries=month_entries,
                is_complete=False
            ))

    def _report(
        self,
        progress_callback: Optional[ProgressCallback],
        progress: ScrapingProgress
    ) -> None:
        if progress_callback is None:
            return
        try:
            progress_callback(progress)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
