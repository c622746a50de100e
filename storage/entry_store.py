"""Storage contract for calendar entries."""
from abc import ABC, abstractmethod
from typing import List, Optional

from processor.models import CalendarEntry


def sort_entries(entries: List[CalendarEntry]) -> List[CalendarEntry]:
    """Order entries by date, then by time as plain strings."""
    return sorted(entries, key=lambda entry: (entry.date, entry.time or ''))


class EntryStore(ABC):
    """
    Abstract base class for calendar entry storage.

    insert_entry must be an atomic insert-if-absent on the entry's
    uniqueness tuple (title, date, time, source_url).
    """

    @abstractmethod
    def init(self) -> None:
        """Prepare the store. Safe to call more than once."""

    @abstractmethod
    def insert_entry(self, entry: CalendarEntry) -> Optional[str]:
        """
        Store an entry unless an identical one exists.

        Returns:
            The new entry_id, or None if the entry was already stored
        """

    @abstractmethod
    def get_entries_by_date_range(self, start_date: str, end_date: str) -> List[CalendarEntry]:
        """Return entries with start_date <= date <= end_date, ordered by date and time."""

    @abstractmethod
    def get_all_entries(self) -> List[CalendarEntry]:
        """Return every entry, ordered by date and time."""

    @abstractmethod
    def get_entry_count(self) -> int:
        """Return the number of stored entries."""

    @abstractmethod
    def clear_all_entries(self) -> int:
        """Delete every entry and return how many were removed."""
