"""Progress reporting for calendar crawls."""
import logging
from typing import Callable, Optional

from processor.models import ScrapingProgress

logger = logging.getLogger(__name__)


ProgressCallback = Callable[[ScrapingProgress], None]


class LoggingProgressReporter:
    """Progress callback that writes each update to the log."""

    def __init__(self):
        self.latest: Optional[ScrapingProgress] = None

    def __call__(self, progress: ScrapingProgress) -> None:
        self.latest = progress
        extra = {
            'current_month': progress.current_month,
            'total_entries': progress.total_entries,
            'current_entries': progress.current_entries,
            'is_complete': progress.is_complete
        }

        if progress.error:
            logger.warning(f"Crawl progress error: {progress.error}", extra=extra)
        elif progress.is_complete:
            logger.info(
                f"Crawl complete: {progress.total_entries} new entries",
                extra=extra
            )
        else:
            logger.info(
                f"Crawl progress for {progress.current_month}: "
                f"{progress.current_entries} this month, "
                f"{progress.total_entries} total",
                extra=extra
            )
