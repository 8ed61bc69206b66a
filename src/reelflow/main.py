"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reelflow import __version__
from reelflow.api.deps import get_context
from reelflow.api.routes import health, jobs, schedules, videos
from reelflow.config import settings
from reelflow.errors import DataError, EntityNotFoundError, InvalidTransitionError
from reelflow.jobs.runner import WorkerPool
from reelflow.logging import get_logger, setup_logging
from reelflow.services.scheduler import SchedulerLoop

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("application_starting", version=__version__)

    # Startup: verify database connection
    try:
        from reelflow.db.session import init_db

        init_db(create_tables=settings.database_url.startswith("sqlite"))
        logger.info("database_connected")
    except Exception as e:
        logger.error("database_connection_failed", error=str(e))
        # Don't raise - let health checks report the issue

    pool: WorkerPool | None = None
    scheduler: SchedulerLoop | None = None
    if settings.worker_enabled or settings.scheduler_enabled:
        context = app.dependency_overrides.get(get_context, get_context)()
        if settings.worker_enabled:
            pool = WorkerPool(context.queue, context)
            await pool.start()
        if settings.scheduler_enabled:
            scheduler = SchedulerLoop(context.scheduling, context.orchestrator, context.settings)
            scheduler.start()

    yield

    # Shutdown
    logger.info("application_shutting_down")
    if scheduler is not None:
        await scheduler.stop()
    if pool is not None:
        await pool.stop()


# Create FastAPI app
app = FastAPI(
    title="reelflow",
    description="Job orchestration and publish scheduling for AI-generated short videos",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EntityNotFoundError)
async def not_found_handler(request: Request, exc: EntityNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(DataError)
async def data_error_handler(request: Request, exc: DataError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)}
    )


# Register routers
app.include_router(health.router)
app.include_router(jobs.router, prefix="/api/v1")
app.include_router(schedules.router, prefix="/api/v1")
app.include_router(videos.router, prefix="/api/v1")
app.include_router(videos.series_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint redirect to docs."""
    return {
        "name": "reelflow",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "reelflow.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
