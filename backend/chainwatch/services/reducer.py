"""
Option chain reduction

Turns a raw option chain payload into a compact Snapshot:
- strike window: nearest N strikes at-or-below the underlying (descending)
  followed by the nearest N strikes above it (ascending)
- max OI / max change-in-OI strike per side over that window
- put/call totals from the upstream's pre-aggregated figures and their ratio
"""
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from chainwatch.core.enums import Instrument
from chainwatch.core.exceptions import ReduceError
from chainwatch.logger import logger
from chainwatch.models.chain import OptionLeg, RawSnapshot, Snapshot, StrikeEntry


DEFAULT_STRIKES_PER_SIDE = 10


class _MaxTracker:
    """Strike with the largest value seen so far; ties keep the first one."""

    __slots__ = ("strike", "value")

    def __init__(self):
        self.strike: Optional[float] = None
        self.value: float = 0

    def offer(self, strike: float, value: Optional[float]) -> None:
        if value is not None and value > self.value:
            self.strike = strike
            self.value = value


def parse_raw_snapshot(payload: Union[RawSnapshot, Mapping[str, Any]]) -> RawSnapshot:
    """Validate an upstream payload against the RawSnapshot schema.

    Raises:
        ReduceError: If the payload is not a mapping or does not match the schema
    """
    if isinstance(payload, RawSnapshot):
        return payload
    if not isinstance(payload, Mapping):
        raise ReduceError(f"expected a JSON object, got {type(payload).__name__}")
    try:
        return RawSnapshot.model_validate(payload)
    except ValidationError as exc:
        raise ReduceError(f"malformed option chain payload: {exc.error_count()} error(s)") from exc


def select_strike_window(
    strikes: List[StrikeEntry],
    underlying_value: float,
    per_side: int = DEFAULT_STRIKES_PER_SIDE,
) -> List[StrikeEntry]:
    """Nearest strikes around the underlying, in scan order."""
    below = sorted(
        (s for s in strikes if s.strike_price <= underlying_value),
        key=lambda s: s.strike_price,
        reverse=True,
    )[:per_side]
    above = sorted(
        (s for s in strikes if s.strike_price > underlying_value),
        key=lambda s: s.strike_price,
    )[:per_side]
    return below + above


def put_call_ratio(total_put_oi: Optional[float], total_call_oi: Optional[float]) -> float:
    if not total_put_oi or not total_call_oi:
        return 0.0
    return round(total_put_oi / total_call_oi, 2)


class DataReducer:
    """Pure transform from raw option chain to Snapshot. Holds no state besides its settings."""

    def __init__(self, strikes_per_side: int = DEFAULT_STRIKES_PER_SIDE):
        self.strikes_per_side = strikes_per_side

    def reduce(
        self,
        raw: Union[RawSnapshot, Mapping[str, Any], None],
        instrument: Instrument,
    ) -> Optional[Snapshot]:
        """Reduce a payload, or return None when it cannot be used."""
        if raw is None:
            logger.warning(f"No option chain payload for {instrument.value}")
            return None
        try:
            return self.reduce_or_raise(raw, instrument)
        except ReduceError as exc:
            logger.warning(f"Cannot reduce {instrument.value} option chain: {exc}")
            return None

    def reduce_or_raise(
        self,
        raw: Union[RawSnapshot, Mapping[str, Any]],
        instrument: Instrument,
    ) -> Snapshot:
        """Reduce a payload.

        Raises:
            ReduceError: If the payload is malformed, has no timestamp or
                no underlying value
        """
        chain = parse_raw_snapshot(raw)

        if not chain.timestamp:
            raise ReduceError("payload has no records.timestamp")
        if chain.underlying_value is None:
            raise ReduceError("payload has no records.underlyingValue")

        window = select_strike_window(chain.strikes, chain.underlying_value, self.strikes_per_side)

        put_oi, put_coi = _MaxTracker(), _MaxTracker()
        call_oi, call_coi = _MaxTracker(), _MaxTracker()
        for entry in window:
            _offer_leg(entry.put, entry.strike_price, put_oi, put_coi)
            _offer_leg(entry.call, entry.strike_price, call_oi, call_coi)

        filtered = chain.filtered
        total_put = filtered.put_totals.total_oi if filtered and filtered.put_totals else None
        total_call = filtered.call_totals.total_oi if filtered and filtered.call_totals else None

        return Snapshot(
            instrument=instrument,
            timestamp=chain.timestamp,
            underlying_value=chain.underlying_value,
            max_put_oi_strike=put_oi.strike,
            max_put_coi_strike=put_coi.strike,
            max_call_oi_strike=call_oi.strike,
            max_call_coi_strike=call_coi.strike,
            total_put_oi=total_put or 0.0,
            total_call_oi=total_call or 0.0,
            put_call_ratio=put_call_ratio(total_put, total_call),
        )


def _offer_leg(leg: Optional[OptionLeg], strike: float, oi: _MaxTracker, coi: _MaxTracker) -> None:
    if leg is None:
        return
    oi.offer(strike, leg.open_interest)
    coi.offer(strike, leg.change_in_open_interest)
