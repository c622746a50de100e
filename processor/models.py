"""Data models for calendar scraping."""
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class CalendarEntry:
    """Meeting or event extracted from the town calendar."""
    title: str
    date: str
    source_url: str
    time: Optional[str] = None
    department: Optional[str] = None
    committee: Optional[str] = None
    event_type: Optional[str] = None
    description: Optional[str] = None
    scraped_at: str = field(default_factory=utc_now_iso)

    @property
    def entry_id(self) -> str:
        """
        Identifier derived from the uniqueness tuple.

        Returns:
            SHA256 hex digest of title + date + time + source_url
        """
        composite = f"{self.title}|{self.date}|{self.time or ''}|{self.source_url}"
        return hashlib.sha256(composite.encode('utf-8')).hexdigest()


@dataclass
class ScrapingProgress:
    """Progress update emitted while a crawl runs."""
    current_month: str
    total_entries: int
    current_entries: int
    is_complete: bool
    error: Optional[str] = None


@dataclass
class CrawlResult:
    """Summary of a finished crawl."""
    months_visited: list[str] = field(default_factory=list)
    total_entries: int = 0
    duplicates: int = 0
    failed_inserts: int = 0
    errors: list[str] = field(default_factory=list)
