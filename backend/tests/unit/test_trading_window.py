"""Unit Tests for TradingWindow"""
from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from chainwatch.config import ScheduleConfig
from chainwatch.core.exceptions import ConfigurationError
from chainwatch.managers.trading_window import TradingWindow


IST = ZoneInfo("Asia/Kolkata")


@pytest.fixture
def window():
    return TradingWindow.from_config(ScheduleConfig())


class TestContains:
    """Test the weekday and boundary checks."""

    def test_midday_on_weekday(self, window):
        assert window.contains(datetime(2025, 5, 16, 11, 0, tzinfo=IST)) is True  # Friday

    def test_weekend(self, window):
        assert window.contains(datetime(2025, 5, 17, 11, 0, tzinfo=IST)) is False  # Saturday
        assert window.is_trading_day(datetime(2025, 5, 17, 11, 0, tzinfo=IST)) is False

    @pytest.mark.parametrize("moment, expected", [
        (time(9, 15, 29), False),
        (time(9, 15, 30), True),
        (time(15, 35, 0), True),
        (time(15, 35, 1), False),
    ])
    def test_boundaries_inclusive(self, window, moment, expected):
        assert window.contains(datetime.combine(datetime(2025, 5, 19).date(), moment, tzinfo=IST)) is expected

    def test_aware_utc_converted(self, window):
        # 04:00 UTC is 09:30 IST
        assert window.contains(datetime(2025, 5, 19, 4, 0, tzinfo=timezone.utc)) is True
        # 10:30 UTC is 16:00 IST
        assert window.contains(datetime(2025, 5, 19, 10, 30, tzinfo=timezone.utc)) is False

    def test_naive_treated_as_local(self, window):
        assert window.contains(datetime(2025, 5, 19, 9, 30)) is True


class TestConstruction:

    def test_start_must_precede_end(self):
        with pytest.raises(ConfigurationError):
            TradingWindow(time(15, 0), time(9, 0), [0], "Asia/Kolkata")

    def test_unknown_timezone(self):
        with pytest.raises(ConfigurationError):
            TradingWindow(time(9, 0), time(15, 0), [0], "Mars/Olympus_Mons")

    def test_describe(self, window):
        assert window.describe() == "09:15:30-15:35:00 Mon,Tue,Wed,Thu,Fri (Asia/Kolkata)"

    def test_now_is_exchange_local(self, window):
        assert window.now().tzinfo == IST
