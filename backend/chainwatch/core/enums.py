"""
Core enumerations used throughout the system.

These fundamental enums are used by multiple components and should be
imported from here (single source of truth).
"""

from enum import Enum


class InstrumentCategory(Enum):
    """
    Upstream endpoint family for an instrument.

    Values:
        INDEX: Served by the index option-chain endpoint
        EQUITY: Served by the equity option-chain endpoint
    """
    INDEX = "index"
    EQUITY = "equity"


class Instrument(str, Enum):
    """
    Instruments whose option chains are harvested.

    Add a member (and, for indices, list it in _INDEX_SYMBOLS) to track
    another underlying.
    """
    NIFTY = "NIFTY"
    TCS = "TCS"
    RELIANCE = "RELIANCE"
    BAJFINANCE = "BAJFINANCE"

    @property
    def category(self) -> InstrumentCategory:
        if self.value in _INDEX_SYMBOLS:
            return InstrumentCategory.INDEX
        return InstrumentCategory.EQUITY

    @classmethod
    def parse(cls, symbol: str) -> "Instrument":
        """Case-insensitive lookup; raises ValueError for unknown symbols."""
        try:
            return cls(symbol.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown instrument: {symbol!r}") from None


_INDEX_SYMBOLS = {"NIFTY"}


class CycleName(str, Enum):
    """Names of the periodic jobs and daily triggers owned by the orchestrator."""
    REFRESH = "refresh"
    SESSION_RENEWAL = "session_renewal"
    WINDOW_START = "window_start"
    WINDOW_END = "window_end"
