"""
Trading window - daily wall-clock interval during which collection runs
"""
from datetime import datetime, time
from typing import Iterable
from zoneinfo import ZoneInfo

from chainwatch.config import ScheduleConfig
from chainwatch.core.exceptions import ConfigurationError


class TradingWindow:
    """Weekday + [start, end] local time check in the exchange time zone."""

    def __init__(self, start: time, end: time, weekdays: Iterable[int], timezone: str):
        if start >= end:
            raise ConfigurationError(f"trading window start {start} must be before end {end}")
        self.start = start
        self.end = end
        self.weekdays = frozenset(weekdays)
        try:
            self.tz = ZoneInfo(timezone)
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"unknown time zone {timezone!r}") from e

    @classmethod
    def from_config(cls, config: ScheduleConfig) -> "TradingWindow":
        return cls(config.window_start, config.window_end, config.trading_weekdays, config.timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def is_trading_day(self, moment: datetime) -> bool:
        return self.localize(moment).weekday() in self.weekdays

    def contains(self, moment: datetime) -> bool:
        """True on a trading weekday when start <= local time <= end."""
        local = self.localize(moment)
        if local.weekday() not in self.weekdays:
            return False
        return self.start <= local.time() <= self.end

    def localize(self, moment: datetime) -> datetime:
        # Naive datetimes are taken to be exchange-local
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.tz)
        return moment.astimezone(self.tz)

    def describe(self) -> str:
        days = ",".join(("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")[d] for d in sorted(self.weekdays))
        return f"{self.start.strftime('%H:%M:%S')}-{self.end.strftime('%H:%M:%S')} {days} ({self.tz.key})"
