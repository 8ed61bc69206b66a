"""FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from reelflow.db.session import get_session
from reelflow.jobs.processors import ProcessorContext, build_context
from reelflow.services.job_queue import JobQueue
from reelflow.services.scheduling import SchedulingService
from reelflow.services.videos import SeriesStore, VideoStore

# Database session dependency
SessionDep = Annotated[Session, Depends(get_session)]


@lru_cache
def get_context() -> ProcessorContext:
    """Shared services and adapters (overridden in tests)."""
    return build_context()


ContextDep = Annotated[ProcessorContext, Depends(get_context)]


def get_queue(context: ContextDep) -> JobQueue:
    return context.queue


def get_videos(context: ContextDep) -> VideoStore:
    return context.videos


def get_series_store(context: ContextDep) -> SeriesStore:
    return SeriesStore(context.videos.session_factory)


def get_scheduling(context: ContextDep) -> SchedulingService:
    return context.scheduling


QueueDep = Annotated[JobQueue, Depends(get_queue)]
VideoStoreDep = Annotated[VideoStore, Depends(get_videos)]
SeriesStoreDep = Annotated[SeriesStore, Depends(get_series_store)]
SchedulingDep = Annotated[SchedulingService, Depends(get_scheduling)]
