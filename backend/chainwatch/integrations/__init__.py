"""
Upstream integrations (NSE session, option chain fetcher, session persistence)
"""
from chainwatch.integrations.session_store import SessionStore, PersistedSession, StoredCookie
from chainwatch.integrations.nse_session import SessionManager
from chainwatch.integrations.nse_fetcher import Fetcher

__all__ = [
    "SessionStore",
    "PersistedSession",
    "StoredCookie",
    "SessionManager",
    "Fetcher",
]
