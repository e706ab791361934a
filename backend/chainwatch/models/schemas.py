"""
API and orchestration result models
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from chainwatch.core.enums import Instrument


class RefreshReport(BaseModel):
    """Outcome of one refresh cycle"""
    started_at: datetime
    finished_at: Optional[datetime] = None
    session_valid: bool = False
    updated: List[Instrument] = Field(default_factory=list)
    duplicates: List[Instrument] = Field(default_factory=list)
    failed: List[Instrument] = Field(default_factory=list)


class ActionResult(BaseModel):
    """Manual trigger response"""
    success: bool
    message: str
    report: Optional[RefreshReport] = None


class InstrumentStatus(BaseModel):
    available: bool
    last_updated: Optional[str] = None
    history_length: int = 0


class StatusResponse(BaseModel):
    """Health/status view"""
    status: str = "ok"
    session_valid: bool
    session_expiry: Optional[datetime] = None
    updates_running: bool
    session_refresh_running: bool
    schedules_active: Dict[str, bool]
    within_trading_window: bool
    instruments: Dict[str, InstrumentStatus]
