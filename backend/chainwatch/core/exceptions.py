"""
Custom exceptions for the harvesting service.

These are raised to signal a failed step and are absorbed at component
boundaries: SessionManager.acquire() returns False, Fetcher.fetch() and
DataReducer.reduce() return None. Nothing here is allowed to escape the
orchestrator.
"""


class ChainwatchError(Exception):
    """Base exception for all chainwatch errors."""
    pass


class ConfigurationError(ChainwatchError):
    """Raised when there's an error in configuration."""
    pass


class SessionAcquisitionError(ChainwatchError):
    """Raised when a step of the session handshake fails."""
    pass


class FetchError(ChainwatchError):
    """Raised when an option chain request fails (network, status or empty body)."""
    pass


class ReduceError(ChainwatchError):
    """Raised when an upstream payload is missing required fields or is malformed."""
    pass


class SchedulerError(ChainwatchError):
    """Raised when a scheduler job is misused (unknown name, bad interval)."""
    pass
