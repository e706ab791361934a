"""
Option chain data models

RawSnapshot mirrors the subset of the NSE option-chain JSON that the
reducer reads. Every field is nullable because the upstream omits legs,
totals and even the records block on bad days; the reducer decides what
is fatal. Snapshot is the immutable reduced record kept in history.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chainwatch.core.enums import Instrument


class OptionLeg(BaseModel):
    """Call (CE) or put (PE) side of a strike entry"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    open_interest: Optional[float] = Field(default=None, alias="openInterest")
    change_in_open_interest: Optional[float] = Field(default=None, alias="changeinOpenInterest")


class StrikeEntry(BaseModel):
    """One strike of the filtered chain"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    strike_price: float = Field(alias="strikePrice")
    call: Optional[OptionLeg] = Field(default=None, alias="CE")
    put: Optional[OptionLeg] = Field(default=None, alias="PE")


class SideTotals(BaseModel):
    """Upstream pre-aggregated totals for one side of the chain"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_oi: Optional[float] = Field(default=None, alias="totOI")


class Records(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    timestamp: Optional[str] = None
    underlying_value: Optional[float] = Field(default=None, alias="underlyingValue")


class FilteredChain(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    data: List[StrikeEntry] = Field(default_factory=list)
    call_totals: Optional[SideTotals] = Field(default=None, alias="CE")
    put_totals: Optional[SideTotals] = Field(default=None, alias="PE")

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, value):
        return [] if value is None else value


class RawSnapshot(BaseModel):
    """Validated upstream option chain payload"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    records: Optional[Records] = None
    filtered: Optional[FilteredChain] = None

    @property
    def timestamp(self) -> Optional[str]:
        return self.records.timestamp if self.records else None

    @property
    def underlying_value(self) -> Optional[float]:
        return self.records.underlying_value if self.records else None

    @property
    def strikes(self) -> List[StrikeEntry]:
        return self.filtered.data if self.filtered else []


class Snapshot(BaseModel):
    """Reduced analytics for one instrument at one upstream timestamp"""
    model_config = ConfigDict(frozen=True)

    instrument: Instrument
    timestamp: str
    underlying_value: float
    max_put_oi_strike: Optional[float] = None
    max_put_coi_strike: Optional[float] = None
    max_call_oi_strike: Optional[float] = None
    max_call_coi_strike: Optional[float] = None
    total_put_oi: float = 0.0
    total_call_oi: float = 0.0
    put_call_ratio: float = 0.0
