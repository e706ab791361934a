"""
Shared route dependencies
"""
from fastapi import HTTPException, Request, status

from chainwatch.core.enums import Instrument
from chainwatch.managers.orchestrator import Orchestrator


def get_orchestrator(request: Request) -> Orchestrator:
    """Orchestrator created by the application lifespan (or installed by tests)."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return orchestrator


def resolve_instrument(symbol: str, orchestrator: Orchestrator) -> Instrument:
    """Map a path symbol to a tracked instrument or raise 404."""
    try:
        instrument = Instrument.parse(symbol)
    except ValueError:
        instrument = None
    if instrument is None or instrument not in orchestrator.instruments:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{symbol.upper()} is not a tracked instrument",
        )
    return instrument
