"""
Chainwatch - FastAPI Application
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chainwatch.api.dependencies import get_orchestrator
from chainwatch.api.routes import control, snapshots
from chainwatch.config import settings
from chainwatch.logger import logger
from chainwatch.managers.orchestrator import Orchestrator, build_orchestrator
from chainwatch.models.schemas import StatusResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for startup and shutdown
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    orchestrator = getattr(app.state, "orchestrator", None) or build_orchestrator(settings)
    app.state.orchestrator = orchestrator

    orchestrator.install_boundary_triggers()
    # Collection may take a while to spin up; keep the API responsive meanwhile
    startup_task = asyncio.create_task(orchestrator.startup())
    startup_task.add_done_callback(_log_startup_failure)
    logger.success("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if not startup_task.done():
        startup_task.cancel()
        await asyncio.gather(startup_task, return_exceptions=True)
    await orchestrator.shutdown()
    logger.success("Application shutdown complete")


def _log_startup_failure(task: asyncio.Task) -> None:
    if task.cancelled() or task.exception() is None:
        return
    logger.opt(exception=task.exception()).error("Startup data collection failed")


def create_app(orchestrator: Optional[Orchestrator] = None) -> FastAPI:
    """Build the application; tests pass a pre-wired orchestrator."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="NSE option chain snapshots with bounded history",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.API.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(control.router)
    app.include_router(snapshots.router)

    @app.get("/")
    async def root():
        """Service description"""
        return {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "endpoints": {
                "individual": "/api/{symbol}",
                "history": "/api/history/{symbol}",
                "all": "/api/all",
                "health": "/health",
                "update": "/api/update (POST)",
                "refreshSession": "/api/refresh-session (POST)",
                "startTrading": "/api/start-trading (POST)",
                "endTrading": "/api/end-trading (POST)",
            },
            "schedules": {
                "tradingStart": settings.SCHEDULE.window_start.isoformat(),
                "tradingEnd": settings.SCHEDULE.window_end.isoformat(),
                "timezone": settings.SCHEDULE.timezone,
            },
        }

    @app.get("/health", response_model=StatusResponse)
    async def health_check(orchestrator: Orchestrator = Depends(get_orchestrator)):
        """Session, job and data availability status"""
        return orchestrator.status()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server at {settings.API.host}:{settings.API.port}")

    uvicorn.run(
        "chainwatch.main:app",
        host=settings.API.host,
        port=settings.API.port,
        reload=settings.DEBUG,
        log_level="info",
    )
