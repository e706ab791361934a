"""
Services
"""
from chainwatch.services.reducer import DataReducer, parse_raw_snapshot, select_strike_window, put_call_ratio

__all__ = ["DataReducer", "parse_raw_snapshot", "select_strike_window", "put_call_ratio"]
