"""
Managers

- history_store.py: HistoryStore (bounded snapshot history)
- scheduler.py: PeriodicJob, DailyTrigger, Scheduler
- trading_window.py: TradingWindow
- orchestrator.py: Orchestrator, build_orchestrator
"""
from chainwatch.managers.history_store import HistoryStore
from chainwatch.managers.scheduler import (
    CancellationToken,
    ScheduledJob,
    PeriodicJob,
    DailyTrigger,
    Scheduler,
)
from chainwatch.managers.trading_window import TradingWindow
from chainwatch.managers.orchestrator import Orchestrator, build_orchestrator

__all__ = [
    "HistoryStore",
    "CancellationToken",
    "ScheduledJob",
    "PeriodicJob",
    "DailyTrigger",
    "Scheduler",
    "TradingWindow",
    "Orchestrator",
    "build_orchestrator",
]
