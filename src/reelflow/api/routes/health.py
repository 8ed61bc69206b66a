"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text

from reelflow.api.deps import ContextDep, SessionDep
from reelflow.config import settings
from reelflow.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    components: dict[str, bool] | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    database: bool
    queue: dict[str, int] | None = None
    components: dict[str, bool] | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Basic health check endpoint that verifies the API is running.",
)
async def health_check() -> HealthResponse:
    """Basic health check - is the API up?

    Reports which providers are real integrations rather than stubs.
    """
    from reelflow import __version__

    components = {
        "llm": settings.llm_provider != "stub",
        "image_gen": settings.image_gen_provider != "stub",
        "voiceover": settings.voiceover_provider != "stub",
        "renderer": settings.renderer_provider != "stub",
        "youtube": settings.publisher_youtube_enabled,
        "instagram": settings.publisher_instagram_enabled,
    }

    return HealthResponse(status="healthy", version=__version__, components=components)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Verifies the database and reports queue depth and adapter health.",
)
async def readiness_check(session: SessionDep, context: ContextDep) -> ReadinessResponse:
    """Comprehensive readiness check including dependencies."""
    database_ok = False
    queue_stats = None
    try:
        session.execute(text("SELECT 1"))
        database_ok = True
        queue_stats = context.queue.stats()
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))

    components = {
        "llm": await context.content.llm.health_check(),
        "image_gen": await context.content.image_gen.health_check(),
        "voiceover": await context.content.voiceover.health_check(),
        "renderer": await context.renderer.health_check(),
    }

    return ReadinessResponse(
        ready=database_ok and all(components.values()),
        database=database_ok,
        queue=queue_stats,
        components=components,
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Simple liveness probe for Kubernetes.",
)
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe - is the process alive?"""
    return {"status": "alive"}
