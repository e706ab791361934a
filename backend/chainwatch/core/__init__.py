"""
Core primitives.

This package contains:
- enums.py: Instrument, InstrumentCategory, CycleName
- exceptions.py: Custom exceptions
- retry.py: RetryPolicy (bounded retry with backoff)
"""

from chainwatch.core.enums import Instrument, InstrumentCategory, CycleName
from chainwatch.core.exceptions import (
    ChainwatchError,
    ConfigurationError,
    SessionAcquisitionError,
    FetchError,
    ReduceError,
    SchedulerError,
)
from chainwatch.core.retry import RetryPolicy

__all__ = [
    # Enums
    'Instrument',
    'InstrumentCategory',
    'CycleName',

    # Exceptions
    'ChainwatchError',
    'ConfigurationError',
    'SessionAcquisitionError',
    'FetchError',
    'ReduceError',
    'SchedulerError',

    # Retry
    'RetryPolicy',
]
