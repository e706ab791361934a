"""Unit Tests for DataReducer

Covers strike window selection, max OI / change-in-OI tracking, totals and
the put/call ratio, and rejection of unusable payloads.
"""
import pytest
from pydantic import ValidationError

from chainwatch.core.enums import Instrument
from chainwatch.core.exceptions import ReduceError
from chainwatch.models.chain import StrikeEntry
from chainwatch.services.reducer import (
    DataReducer,
    parse_raw_snapshot,
    put_call_ratio,
    select_strike_window,
)
from tests.fixtures.chain_data import NIFTY_ROWS, make_chain


@pytest.fixture
def reducer():
    return DataReducer(strikes_per_side=10)


def _strikes(*prices):
    return [StrikeEntry(strikePrice=p) for p in prices]


class TestStrikeWindow:
    """Test selection of strikes around the underlying."""

    def test_below_descending_then_above_ascending(self):
        strikes = _strikes(22700, 22300, 22500, 22600, 22400)

        window = select_strike_window(strikes, 22510, per_side=10)

        assert [s.strike_price for s in window] == [22500, 22400, 22300, 22600, 22700]

    def test_strike_equal_to_underlying_counts_as_below(self):
        window = select_strike_window(_strikes(100, 110, 120), 110, per_side=10)

        assert [s.strike_price for s in window] == [110, 100, 120]

    def test_limited_per_side(self):
        strikes = _strikes(*range(100, 400, 10))  # 30 strikes

        window = select_strike_window(strikes, 255, per_side=10)

        prices = [s.strike_price for s in window]
        assert len(prices) == 20
        assert prices[:10] == list(range(250, 150, -10))
        assert prices[10:] == list(range(260, 360, 10))

    def test_one_sided_chain(self):
        window = select_strike_window(_strikes(100, 110), 500, per_side=10)

        assert [s.strike_price for s in window] == [110, 100]


class TestPutCallRatio:
    """Test ratio rounding and zero handling."""

    def test_rounded_to_two_decimals(self):
        assert put_call_ratio(21_750_000, 14_500_000) == 1.5
        assert put_call_ratio(10, 3) == 3.33

    def test_zero_when_call_total_is_zero(self):
        assert put_call_ratio(1000, 0) == 0.0

    def test_zero_when_a_total_is_missing(self):
        assert put_call_ratio(None, 1000) == 0.0
        assert put_call_ratio(1000, None) == 0.0


class TestReduce:
    """Test full payload reduction."""

    def test_max_strikes_and_totals(self, reducer, nifty_chain):
        snapshot = reducer.reduce(nifty_chain, Instrument.NIFTY)

        assert snapshot is not None
        assert snapshot.instrument is Instrument.NIFTY
        assert snapshot.timestamp == "16-May-2025 15:30:00"
        assert snapshot.underlying_value == 22510.0
        assert snapshot.max_call_oi_strike == 22500
        assert snapshot.max_put_oi_strike == 22500
        assert snapshot.max_call_coi_strike == 22600
        assert snapshot.max_put_coi_strike == 22500
        assert snapshot.total_put_oi == 21_750_000
        assert snapshot.total_call_oi == 14_500_000
        assert snapshot.put_call_ratio == 1.5

    def test_strike_at_underlying_holds_max_oi(self, reducer):
        payload = make_chain(
            [
                (22400, 10, None, 1, None),
                (22450, 20, None, 5, None),
                (22500, 30, None, 40, None),
                (22550, 5, None, 20, None),
                (22600, 1, None, 10, None),
            ],
            underlying=22500,
        )

        snapshot = reducer.reduce(payload, Instrument.NIFTY)

        assert snapshot.max_call_oi_strike == 22500
        assert snapshot.max_put_oi_strike == 22500
        assert snapshot.max_call_coi_strike is None

    def test_totals_are_not_swapped(self, reducer):
        payload = make_chain(NIFTY_ROWS, total_call_oi=3000, total_put_oi=1000)

        snapshot = reducer.reduce(payload, Instrument.NIFTY)

        assert snapshot.total_call_oi == 3000
        assert snapshot.total_put_oi == 1000
        assert snapshot.put_call_ratio == 0.33

    def test_zero_call_total_gives_zero_ratio(self, reducer):
        payload = make_chain(NIFTY_ROWS, total_call_oi=0)

        snapshot = reducer.reduce(payload, Instrument.NIFTY)

        assert snapshot.total_call_oi == 0
        assert snapshot.put_call_ratio == 0.0

    def test_missing_totals_default_to_zero(self, reducer):
        payload = make_chain(NIFTY_ROWS, total_call_oi=None, total_put_oi=None)

        snapshot = reducer.reduce(payload, Instrument.NIFTY)

        assert snapshot.total_call_oi == 0.0
        assert snapshot.total_put_oi == 0.0
        assert snapshot.put_call_ratio == 0.0

    def test_tie_keeps_first_in_scan_order(self, reducer):
        # Scan order: 110, 100 (below, descending) then 120 (above)
        payload = make_chain(
            [
                (100, None, None, 60, 1),
                (110, None, None, 5, 1),
                (120, None, None, 60, 1),
            ],
            underlying=115,
        )

        snapshot = reducer.reduce(payload, Instrument.NIFTY)

        assert snapshot.max_put_oi_strike == 100
        assert snapshot.max_put_coi_strike == 110

    def test_strikes_outside_window_ignored(self):
        rows = [(float(p), 10, 1, 10, 1) for p in range(100, 400, 10)]
        rows[0] = (100.0, 10, 1, 999_999, 1)  # far below, outside a 10-strike window
        payload = make_chain(rows, underlying=255)

        snapshot = DataReducer(strikes_per_side=10).reduce(payload, Instrument.NIFTY)

        assert snapshot.max_put_oi_strike == 250

    def test_non_positive_values_leave_strike_unset(self, reducer):
        payload = make_chain(
            [(100, 0, -50, 0, -10), (110, 0, -5, 0, 0)],
            underlying=105,
        )

        snapshot = reducer.reduce(payload, Instrument.NIFTY)

        assert snapshot.max_call_oi_strike is None
        assert snapshot.max_call_coi_strike is None
        assert snapshot.max_put_oi_strike is None
        assert snapshot.max_put_coi_strike is None

    def test_missing_legs_are_skipped(self, reducer):
        payload = make_chain(
            [(100, None, None, 500, 20), (110, 300, 30, None, None)],
            underlying=105,
        )

        snapshot = reducer.reduce(payload, Instrument.NIFTY)

        assert snapshot.max_put_oi_strike == 100
        assert snapshot.max_call_oi_strike == 110

    def test_empty_chain_still_reduces(self, reducer):
        snapshot = reducer.reduce(make_chain([]), Instrument.TCS)

        assert snapshot is not None
        assert snapshot.max_call_oi_strike is None
        assert snapshot.put_call_ratio == 1.5


class TestUnusablePayloads:
    """Test payloads that cannot be reduced."""

    def test_none_payload(self, reducer):
        assert reducer.reduce(None, Instrument.NIFTY) is None

    def test_missing_timestamp(self, reducer):
        assert reducer.reduce(make_chain(NIFTY_ROWS, timestamp=None), Instrument.NIFTY) is None

    def test_missing_underlying(self, reducer):
        assert reducer.reduce(make_chain(NIFTY_ROWS, underlying=None), Instrument.NIFTY) is None

    def test_missing_records_block(self, reducer):
        assert reducer.reduce({"filtered": {"data": []}}, Instrument.NIFTY) is None

    def test_non_object_payload(self, reducer):
        assert reducer.reduce(["not", "a", "chain"], Instrument.NIFTY) is None

    def test_malformed_strike(self, reducer):
        payload = make_chain(NIFTY_ROWS)
        payload["filtered"]["data"][0]["strikePrice"] = "not-a-number"

        assert reducer.reduce(payload, Instrument.NIFTY) is None

    def test_reduce_or_raise_reports_reason(self, reducer):
        with pytest.raises(ReduceError, match="timestamp"):
            reducer.reduce_or_raise(make_chain(NIFTY_ROWS, timestamp=None), Instrument.NIFTY)

    def test_parse_rejects_non_mapping(self):
        with pytest.raises(ReduceError):
            parse_raw_snapshot("records")

    def test_null_data_treated_as_empty(self, reducer):
        payload = make_chain(NIFTY_ROWS)
        payload["filtered"]["data"] = None

        snapshot = reducer.reduce(payload, Instrument.NIFTY)

        assert snapshot is not None
        assert snapshot.max_put_oi_strike is None


class TestSnapshotModel:
    """Test Snapshot immutability."""

    def test_snapshot_is_frozen(self, reducer, nifty_chain):
        snapshot = reducer.reduce(nifty_chain, Instrument.NIFTY)

        with pytest.raises(ValidationError):
            snapshot.timestamp = "other"
