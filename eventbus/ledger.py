"""Bounded emission history and running counters."""

from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, List, Optional


@dataclass(frozen=True)
class HistoryEntry:
    """One recorded emission."""
    event_name: str
    payload: Any
    timestamp: float
    listener_count: int


@dataclass(frozen=True)
class BusStats:
    """Snapshot of the running counters."""
    emitted_count: int = 0
    active_listener_count: int = 0
    error_count: int = 0


class Ledger:
    """FIFO history buffer (oldest evicted first) plus emission/error counters."""

    def __init__(self, capacity: int = 100):
        self.capacity = capacity
        self._history: Deque[HistoryEntry] = deque()
        self._emitted = 0
        self._active_listeners = 0
        self._errors = 0

    def record(self, entry: HistoryEntry) -> None:
        self._history.append(entry)
        while len(self._history) > self.capacity:
            self._history.popleft()

    def query(self, event_name: Optional[str] = None, limit: Optional[int] = None) -> List[HistoryEntry]:
        """
        Copy of the history, oldest first.

        Args:
            event_name: Only entries for this exact name
            limit: Keep only the most recent N matching entries
        """
        history = list(self._history)
        if event_name is not None:
            history = [e for e in history if e.event_name == event_name]
        if limit is not None:
            history = history[-limit:] if limit > 0 else []
        return history

    def clear_history(self) -> None:
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)

    def increment_emitted(self) -> None:
        self._emitted += 1

    def increment_errors(self) -> None:
        self._errors += 1

    def set_active_listeners(self, count: int) -> None:
        self._active_listeners = count

    def stats(self) -> BusStats:
        return BusStats(
            emitted_count=self._emitted,
            active_listener_count=self._active_listeners,
            error_count=self._errors,
        )

    def reset_stats(self, active_listeners: int = 0) -> None:
        """Zero the counters; the listener gauge is set to the live count."""
        self._emitted = 0
        self._errors = 0
        self._active_listeners = active_listeners
