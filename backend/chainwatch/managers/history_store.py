"""
History Store - bounded per-instrument snapshot history

PERFORMANCE:
- deque(maxlen=capacity) for O(1) append with FIFO eviction
- current snapshot and last-seen timestamp kept alongside for O(1) reads

Mutation happens only from the event loop and never awaits, so a record
is either fully applied (history, current and last timestamp together)
or not applied at all.
"""
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional

from chainwatch.core.enums import Instrument
from chainwatch.logger import logger
from chainwatch.models.chain import Snapshot


DEFAULT_CAPACITY = 100


class HistoryStore:
    """Recent Snapshots per instrument plus a "current" pointer."""

    def __init__(self, instruments: Iterable[Instrument], capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._instruments: List[Instrument] = list(instruments)
        self._history: Dict[Instrument, Deque[Snapshot]] = {}
        self._current: Dict[Instrument, Optional[Snapshot]] = {}
        self._last_timestamp: Dict[Instrument, Optional[str]] = {}
        self.clear_all()

    @property
    def instruments(self) -> List[Instrument]:
        return list(self._instruments)

    def record_if_new(self, instrument: Instrument, snapshot: Snapshot) -> bool:
        """
        Append a snapshot unless its timestamp repeats the last recorded one.

        Returns:
            True if recorded, False for a duplicate (no state change)
        """
        self._ensure_tracked(instrument)

        if self._last_timestamp[instrument] == snapshot.timestamp:
            logger.info(f"Duplicate data detected for {instrument.value}. Skipping...")
            return False

        self._history[instrument].append(snapshot)
        self._current[instrument] = snapshot
        self._last_timestamp[instrument] = snapshot.timestamp
        return True

    def current_of(self, instrument: Instrument) -> Optional[Snapshot]:
        return self._current.get(instrument)

    def history_of(self, instrument: Instrument) -> List[Snapshot]:
        """Oldest first. Returns a copy."""
        return list(self._history.get(instrument, ()))

    def last_timestamp_of(self, instrument: Instrument) -> Optional[str]:
        return self._last_timestamp.get(instrument)

    def all_current(self) -> Dict[Instrument, Optional[Snapshot]]:
        return {instrument: self._current.get(instrument) for instrument in self._instruments}

    def clear_all(self) -> None:
        """Empty history, current and last-seen timestamp for every instrument."""
        for instrument in self._instruments:
            self._history[instrument] = deque(maxlen=self.capacity)
            self._current[instrument] = None
            self._last_timestamp[instrument] = None
        logger.info("All stock data cleared")

    def _ensure_tracked(self, instrument: Instrument) -> None:
        if instrument not in self._history:
            self._instruments.append(instrument)
            self._history[instrument] = deque(maxlen=self.capacity)
            self._current[instrument] = None
            self._last_timestamp[instrument] = None
