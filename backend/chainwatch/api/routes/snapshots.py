"""
Snapshot API Routes
Read access to current snapshots and bounded history
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from chainwatch.api.dependencies import get_orchestrator, resolve_instrument
from chainwatch.managers.orchestrator import Orchestrator
from chainwatch.models.chain import Snapshot

router = APIRouter(prefix="/api", tags=["Snapshots"])


@router.get("/all", response_model=Dict[str, Optional[Snapshot]])
async def get_all_snapshots(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Current snapshot of every tracked instrument (null until first update)."""
    return {
        instrument.value: snapshot
        for instrument, snapshot in orchestrator.history.all_current().items()
    }


@router.get("/history/{symbol}", response_model=List[Snapshot])
async def get_history(symbol: str, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Recent snapshots for one instrument, oldest first."""
    instrument = resolve_instrument(symbol, orchestrator)
    return orchestrator.history.history_of(instrument)


@router.get("/{symbol}", response_model=Snapshot)
async def get_current_snapshot(symbol: str, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Latest snapshot for one instrument."""
    instrument = resolve_instrument(symbol, orchestrator)
    snapshot = orchestrator.history.current_of(instrument)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{instrument.value} data not available yet",
        )
    return snapshot
