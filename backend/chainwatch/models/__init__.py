"""
Data models
"""
from chainwatch.models.chain import (
    OptionLeg,
    StrikeEntry,
    SideTotals,
    Records,
    FilteredChain,
    RawSnapshot,
    Snapshot,
)
from chainwatch.models.schemas import (
    RefreshReport,
    ActionResult,
    InstrumentStatus,
    StatusResponse,
)

__all__ = [
    "OptionLeg",
    "StrikeEntry",
    "SideTotals",
    "Records",
    "FilteredChain",
    "RawSnapshot",
    "Snapshot",
    "RefreshReport",
    "ActionResult",
    "InstrumentStatus",
    "StatusResponse",
]
