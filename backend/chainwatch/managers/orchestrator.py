"""
Orchestrator - refresh cycles and trading-day lifecycle

Key Responsibilities:
1. Own SessionManager, Fetcher, DataReducer and HistoryStore
2. Run refresh cycles: fetch -> reduce -> record, one instrument at a time
3. Start/stop the periodic refresh and session-renewal jobs
4. Start/stop collection at the trading window boundaries
5. Report status for the health endpoint

Failures never escape this layer: a bad instrument is skipped for the
cycle and the remaining instruments are still attempted.

Usage:
    orchestrator = build_orchestrator(settings)
    await orchestrator.startup()
    orchestrator.install_boundary_triggers()
    ...
    await orchestrator.shutdown()
"""
import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from chainwatch.config import HarvestConfig, ScheduleConfig, Settings
from chainwatch.core.enums import CycleName, Instrument
from chainwatch.core.exceptions import ConfigurationError
from chainwatch.integrations.nse_fetcher import Fetcher
from chainwatch.integrations.nse_session import SessionManager
from chainwatch.integrations.session_store import SessionStore
from chainwatch.logger import logger
from chainwatch.managers.history_store import HistoryStore
from chainwatch.managers.scheduler import DailyTrigger, PeriodicJob, Scheduler
from chainwatch.managers.trading_window import TradingWindow
from chainwatch.models.schemas import InstrumentStatus, RefreshReport, StatusResponse
from chainwatch.services.reducer import DataReducer


UPDATED = "updated"
DUPLICATES = "duplicates"
FAILED = "failed"


class Orchestrator:
    """
    Drives collection against the NSE upstream.

    Refresh cycles are serialized with an asyncio.Lock: a manual refresh
    requested while a scheduled cycle is running waits for it to finish
    instead of interleaving requests and breaking upstream pacing.
    """

    def __init__(
        self,
        session: SessionManager,
        fetcher: Fetcher,
        reducer: DataReducer,
        history: HistoryStore,
        window: TradingWindow,
        harvest: HarvestConfig,
        schedule: ScheduleConfig,
        scheduler: Optional[Scheduler] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.session = session
        self.fetcher = fetcher
        self.reducer = reducer
        self.history = history
        self.window = window
        self.harvest = harvest
        self.schedule = schedule
        self.scheduler = scheduler or Scheduler()
        self._sleep = sleep
        self._refresh_lock = asyncio.Lock()
        self.last_report: Optional[RefreshReport] = None

        self.scheduler.add(PeriodicJob(
            CycleName.REFRESH.value,
            schedule.refresh_interval_seconds,
            self.refresh_all,
        ))
        self.scheduler.add(PeriodicJob(
            CycleName.SESSION_RENEWAL.value,
            schedule.renewal_interval_seconds,
            self.renew_session,
        ))

    @property
    def instruments(self) -> List[Instrument]:
        return self.history.instruments

    # =========================================================================
    # Refresh
    # =========================================================================

    async def refresh_all(self) -> RefreshReport:
        """Fetch, reduce and record every instrument sequentially."""
        async with self._refresh_lock:
            logger.info("Updating all stock data...")
            report = RefreshReport(started_at=datetime.now(timezone.utc))

            report.session_valid = await self.session.ensure_valid()
            await self._sleep(self.harvest.post_session_delay_seconds)

            instruments = self.instruments
            for index, instrument in enumerate(instruments):
                outcome = await self._update_guarded(instrument)
                getattr(report, outcome).append(instrument)

                if index < len(instruments) - 1:
                    await self._sleep(self.harvest.inter_instrument_delay_seconds)

            report.finished_at = datetime.now(timezone.utc)
            self.last_report = report
            logger.info(
                f"All stock data update completed: {len(report.updated)} updated, "
                f"{len(report.duplicates)} unchanged, {len(report.failed)} failed"
            )
            return report

    async def update_instrument(self, instrument: Instrument) -> str:
        """One fetch -> reduce -> record pass. Returns 'updated', 'duplicates' or 'failed'."""
        logger.info(f"Updating data for {instrument.value}...")

        raw = await self.fetcher.fetch(instrument)
        if raw is None:
            logger.error(f"Failed to fetch {instrument.value} data")
            return FAILED

        snapshot = self.reducer.reduce(raw, instrument)
        if snapshot is None:
            return FAILED

        if not self.history.record_if_new(instrument, snapshot):
            return DUPLICATES

        logger.success(f"Updated {instrument.value} data successfully ({snapshot.timestamp})")
        return UPDATED

    async def _update_guarded(self, instrument: Instrument) -> str:
        try:
            return await self.update_instrument(instrument)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Error updating {instrument.value} data")
            return FAILED

    async def renew_session(self) -> bool:
        """Force a fresh session handshake."""
        return await self.session.acquire()

    # =========================================================================
    # Trading window lifecycle
    # =========================================================================

    async def start_trading_window(self) -> RefreshReport:
        """Clear history, renew the session, refresh once, then start the periodic jobs."""
        logger.info("Starting trading day data collection...")

        self.history.clear_all()
        await self.session.acquire()
        report = await self.refresh_all()

        if self.scheduler.start(CycleName.REFRESH.value):
            logger.info(f"Starting interval updates every {self.schedule.refresh_interval_seconds:.0f}s")
        if self.scheduler.start(CycleName.SESSION_RENEWAL.value):
            logger.info(f"Starting session refresh every {self.schedule.renewal_interval_seconds:.0f}s")

        logger.info("Trading day data collection started")
        return report

    def stop_trading_window(self) -> bool:
        """Stop the periodic jobs. In-flight cycles run to completion."""
        logger.info("Ending trading day data collection...")
        stopped_refresh = self.scheduler.stop(CycleName.REFRESH.value)
        stopped_renewal = self.scheduler.stop(CycleName.SESSION_RENEWAL.value)
        logger.info("Trading day data collection ended")
        return stopped_refresh or stopped_renewal

    async def startup(self) -> bool:
        """Restore the persisted session and start collecting if inside the trading window."""
        try:
            self.session.restore()
        except Exception:
            logger.exception("Failed to restore persisted NSE session, starting fresh")

        now = self.window.now()
        if self.window.contains(now):
            logger.info("Current time is within trading hours, starting data collection...")
            await self.start_trading_window()
            return True

        logger.info("Current time is outside trading hours, no data collection started")
        return False

    def install_boundary_triggers(self) -> None:
        """Register and start the daily start/stop triggers."""
        if not self.schedule.triggers_enabled:
            logger.info("Trading window triggers disabled by configuration")
            return

        if not self.scheduler.has(CycleName.WINDOW_START.value):
            self.scheduler.add(DailyTrigger(
                CycleName.WINDOW_START.value,
                at=self.window.start,
                weekdays=self.window.weekdays,
                tz=self.window.tz,
                action=self.start_trading_window,
            ))
            self.scheduler.add(DailyTrigger(
                CycleName.WINDOW_END.value,
                at=self.window.end,
                weekdays=self.window.weekdays,
                tz=self.window.tz,
                action=self._end_of_window,
            ))

        self.scheduler.start(CycleName.WINDOW_START.value)
        self.scheduler.start(CycleName.WINDOW_END.value)
        logger.info(f"Trading window triggers active: {self.window.describe()}")

    async def _end_of_window(self) -> None:
        self.stop_trading_window()

    async def shutdown(self) -> None:
        logger.info("Shutting down orchestrator...")
        await self.scheduler.aclose()
        await self.session.aclose()

    # =========================================================================
    # Status
    # =========================================================================

    def status(self) -> StatusResponse:
        instruments = {
            instrument.value: InstrumentStatus(
                available=self.history.current_of(instrument) is not None,
                last_updated=self.history.last_timestamp_of(instrument),
                history_length=len(self.history.history_of(instrument)),
            )
            for instrument in self.instruments
        }
        return StatusResponse(
            session_valid=self.session.is_valid,
            session_expiry=self.session.expiry,
            updates_running=self.scheduler.is_running(CycleName.REFRESH.value),
            session_refresh_running=self.scheduler.is_running(CycleName.SESSION_RENEWAL.value),
            schedules_active={
                "window_start": self.scheduler.is_running(CycleName.WINDOW_START.value),
                "window_end": self.scheduler.is_running(CycleName.WINDOW_END.value),
            },
            within_trading_window=self.window.contains(self.window.now()),
            instruments=instruments,
        )


def build_orchestrator(config: Settings) -> Orchestrator:
    """Wire the production component graph from settings."""
    try:
        instruments = [Instrument.parse(symbol) for symbol in config.HARVEST.instruments]
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    if not instruments:
        raise ConfigurationError("HARVEST__INSTRUMENTS must list at least one instrument")

    session = SessionManager(
        config.UPSTREAM,
        config.SESSION,
        store=SessionStore(config.SESSION.store_path),
    )
    fetcher = Fetcher(
        session,
        config.UPSTREAM,
        attempts=config.HARVEST.fetch_attempts,
        backoff_unit_seconds=config.HARVEST.backoff_unit_seconds,
    )
    return Orchestrator(
        session=session,
        fetcher=fetcher,
        reducer=DataReducer(strikes_per_side=config.HARVEST.strikes_per_side),
        history=HistoryStore(instruments, capacity=config.HARVEST.history_capacity),
        window=TradingWindow.from_config(config.SCHEDULE),
        harvest=config.HARVEST,
        schedule=config.SCHEDULE,
    )
