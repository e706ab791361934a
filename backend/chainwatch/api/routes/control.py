"""
Control API Routes
Manual triggers for refresh, session renewal and the trading window.

Each trigger reports success or failure as an ActionResult and leaves the
periodic jobs exactly as they were.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from chainwatch.api.dependencies import get_orchestrator
from chainwatch.logger import logger
from chainwatch.managers.orchestrator import Orchestrator
from chainwatch.models.schemas import ActionResult

router = APIRouter(prefix="/api", tags=["Control"])


def _error(message: str, error: Exception) -> JSONResponse:
    logger.error(f"{message}: {error}")
    return JSONResponse(
        status_code=500,
        content=ActionResult(success=False, message=f"{message}: {error}").model_dump(mode="json"),
    )


@router.post("/update", response_model=ActionResult)
async def force_update(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Run one full refresh cycle now."""
    try:
        report = await orchestrator.refresh_all()
    except Exception as e:
        return _error("Manual update failed", e)
    return ActionResult(
        success=not report.failed,
        message="Manual update completed" if not report.failed else "Manual update completed with failures",
        report=report,
    )


@router.post("/refresh-session", response_model=ActionResult)
async def force_session_refresh(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Force a fresh NSE session handshake."""
    try:
        result = await orchestrator.renew_session()
    except Exception as e:
        return _error("Session refresh failed", e)
    return ActionResult(
        success=result,
        message="Session refreshed" if result else "Failed to refresh session",
    )


@router.post("/start-trading", response_model=ActionResult)
async def start_trading(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Start the trading window now (clears history)."""
    try:
        report = await orchestrator.start_trading_window()
    except Exception as e:
        return _error("Failed to start trading day", e)
    return ActionResult(success=True, message="Trading day started manually", report=report)


@router.post("/end-trading", response_model=ActionResult)
async def end_trading(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Stop the periodic jobs now."""
    try:
        orchestrator.stop_trading_window()
    except Exception as e:
        return _error("Failed to end trading day", e)
    return ActionResult(success=True, message="Trading day ended manually")
