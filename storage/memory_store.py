"""In-memory entry store for local runs."""
import logging
import threading
from typing import Dict, List, Optional

from processor.models import CalendarEntry
from storage.entry_store import EntryStore, sort_entries

logger = logging.getLogger(__name__)


class MemoryStore(EntryStore):
    """Entry store backed by a dict keyed on entry_id."""

    def __init__(self):
        self._entries: Dict[str, CalendarEntry] = {}
        self._lock = threading.Lock()

    def init(self) -> None:
        logger.info("Memory store initialized")

    def insert_entry(self, entry: CalendarEntry) -> Optional[str]:
        entry_id = entry.entry_id
        with self._lock:
            if entry_id in self._entries:
                return None
            self._entries[entry_id] = entry
        return entry_id

    def get_entries_by_date_range(self, start_date: str, end_date: str) -> List[CalendarEntry]:
        with self._lock:
            entries = [
                entry for entry in self._entries.values()
                if start_date <= entry.date <= end_date
            ]
        return sort_entries(entries)

    def get_all_entries(self) -> List[CalendarEntry]:
        with self._lock:
            entries = list(self._entries.values())
        return sort_entries(entries)

    def get_entry_count(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear_all_entries(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} entries from memory store")
        return count
