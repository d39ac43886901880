# backend/alphapunch/memory/history.py

from typing import List, Optional

from ..models import HistoryEntry

HISTORY_CAPACITY = 10


class HistoryCache:
    """
    Recent successful generations, most recent first.

    Entries are immutable, so anything handed out by list() or select()
    stays valid after it has been evicted here.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self._capacity = capacity
        self._entries: List[HistoryEntry] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, entry: HistoryEntry) -> None:
        self._entries.insert(0, entry)
        if len(self._entries) > self._capacity:
            del self._entries[self._capacity:]

    def list(self) -> List[HistoryEntry]:
        return list(self._entries)

    def select(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def __len__(self) -> int:
        return len(self._entries)
