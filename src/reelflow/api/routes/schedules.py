"""Scheduled post, publishing calendar and scheduling analytics endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from reelflow.api.deps import SchedulingDep
from reelflow.domain.enums import Frequency, ScheduledPostStatus
from reelflow.logging import get_logger
from reelflow.services.scheduling import bulk_schedule_options

router = APIRouter(prefix="/schedules", tags=["Scheduling"])
logger = get_logger(__name__)


# =============================================================================
# Schemas
# =============================================================================


class TimeSlotSchema(BaseModel):
    """Recurring publish slot (day_of_week: 0 = Sunday .. 6 = Saturday)."""

    day_of_week: int = Field(default=0, ge=0, le=6)
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)


class ScheduledPostRequest(BaseModel):
    """Request to schedule a video."""

    owner_id: str = Field(..., min_length=1)
    video_id: UUID
    platforms: list[str] = Field(..., min_length=1)
    scheduled_at: datetime


class ScheduledPostUpdate(BaseModel):
    """Changes to a pending scheduled post."""

    scheduled_at: datetime | None = None
    platforms: list[str] | None = Field(default=None, min_length=1)


class ScheduledPostResponse(BaseModel):
    """A scheduled post."""

    id: UUID
    owner_id: str
    video_id: UUID
    platforms: list[str]
    scheduled_at: datetime
    status: ScheduledPostStatus
    published_urls: dict[str, str] = Field(default_factory=dict)
    error: str | None = None
    publish_job_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BulkOptionsRequest(BaseModel):
    """Request to spread videos over time."""

    video_ids: list[UUID] = Field(..., min_length=1)
    platforms: list[str] = Field(..., min_length=1)
    start_date: datetime
    frequency: Frequency = Frequency.DAILY


class BulkScheduleItem(BaseModel):
    """One entry of a bulk schedule."""

    video_id: UUID
    scheduled_at: datetime
    platforms: list[str] = Field(..., min_length=1)


class BulkScheduleRequest(BaseModel):
    """Request to create many scheduled posts."""

    owner_id: str = Field(..., min_length=1)
    schedules: list[BulkScheduleItem] = Field(..., min_length=1)


class CalendarRequest(BaseModel):
    """Request to create a publishing calendar."""

    owner_id: str = Field(..., min_length=1)
    frequency: Frequency
    time_slots: list[TimeSlotSchema] = Field(..., min_length=1)
    platforms: list[str] = Field(..., min_length=1)
    series_id: UUID | None = None
    category: str | None = Field(default=None, max_length=100)
    is_active: bool = True


class CalendarUpdate(BaseModel):
    """Changes to a publishing calendar."""

    frequency: Frequency | None = None
    time_slots: list[TimeSlotSchema] | None = Field(default=None, min_length=1)
    platforms: list[str] | None = Field(default=None, min_length=1)
    series_id: UUID | None = None
    category: str | None = None
    is_active: bool | None = None


class CalendarResponse(BaseModel):
    """A publishing calendar."""

    id: UUID
    owner_id: str
    series_id: UUID | None = None
    frequency: Frequency
    time_slots: list[TimeSlotSchema]
    platforms: list[str]
    category: str | None = None
    is_active: bool
    next_scheduled_at: datetime | None = None
    last_triggered_at: datetime | None = None


class AnalyticsResponse(BaseModel):
    """Scheduling totals for one owner."""

    total_scheduled: int
    total_published: int
    total_failed: int
    platform_breakdown: dict[str, int]
    upcoming_posts: int


class GenerateNextRequest(BaseModel):
    """Optional platforms to publish the generated video to."""

    platforms: list[str] = Field(default_factory=list)


class GenerateNextResponse(BaseModel):
    """Response when the next series video is requested."""

    series_id: UUID
    job_id: UUID
    message: str


def _not_found(entity: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} not found")


# =============================================================================
# Scheduled posts
# =============================================================================


@router.post(
    "/posts",
    response_model=ScheduledPostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule post",
    description="Schedule a completed video and queue its delayed publish job.",
)
async def create_scheduled_post(
    request: ScheduledPostRequest, scheduling: SchedulingDep
) -> ScheduledPostResponse:
    post = scheduling.schedule_video(
        request.video_id,
        request.platforms,
        request.scheduled_at,
        owner_id=request.owner_id,
    )
    return ScheduledPostResponse(**post)


@router.get(
    "/posts",
    response_model=list[ScheduledPostResponse],
    summary="List scheduled posts",
    description="Scheduled posts ordered by publish time.",
)
async def list_scheduled_posts(
    scheduling: SchedulingDep,
    owner_id: str | None = None,
    post_status: ScheduledPostStatus | None = Query(default=None, alias="status"),
) -> list[ScheduledPostResponse]:
    posts = scheduling.list_scheduled_posts(owner_id=owner_id, status=post_status)
    return [ScheduledPostResponse(**p) for p in posts]


@router.get(
    "/posts/due",
    response_model=list[ScheduledPostResponse],
    summary="List due posts",
    description="Pending posts whose publish time has passed.",
)
async def list_due_posts(
    scheduling: SchedulingDep,
    limit: int = Query(default=100, ge=1, le=1000),
) -> list[ScheduledPostResponse]:
    return [ScheduledPostResponse(**p) for p in scheduling.list_due_posts(limit=limit)]


@router.patch(
    "/posts/{post_id}",
    response_model=ScheduledPostResponse,
    summary="Update scheduled post",
    description="Change the time or platforms of a pending post.",
)
async def update_scheduled_post(
    post_id: UUID, request: ScheduledPostUpdate, scheduling: SchedulingDep
) -> ScheduledPostResponse:
    post = scheduling.update_scheduled_post(
        post_id, scheduled_at=request.scheduled_at, platforms=request.platforms
    )
    if post is None:
        raise _not_found("Pending scheduled post")
    return ScheduledPostResponse(**post)


@router.delete(
    "/posts/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel scheduled post",
    description="Cancel a pending post and its queued publish job.",
)
async def cancel_scheduled_post(post_id: UUID, scheduling: SchedulingDep) -> None:
    if not scheduling.cancel_scheduled_post(post_id):
        raise _not_found("Pending scheduled post")


# =============================================================================
# Bulk scheduling
# =============================================================================


@router.post(
    "/bulk/options",
    summary="Bulk schedule options",
    description="Spread videos one day, week or month apart from a start date.",
)
async def get_bulk_options(request: BulkOptionsRequest) -> list[dict[str, Any]]:
    return bulk_schedule_options(
        request.video_ids, request.platforms, request.start_date, request.frequency
    )


@router.post(
    "/bulk",
    response_model=list[ScheduledPostResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Bulk schedule",
)
async def schedule_bulk_posts(
    request: BulkScheduleRequest, scheduling: SchedulingDep
) -> list[ScheduledPostResponse]:
    posts = scheduling.schedule_bulk_posts(
        request.owner_id, [item.model_dump() for item in request.schedules]
    )
    logger.info("bulk_posts_scheduled", owner_id=request.owner_id, count=len(posts))
    return [ScheduledPostResponse(**p) for p in posts]


# =============================================================================
# Publishing calendars
# =============================================================================


@router.post(
    "/calendars",
    response_model=CalendarResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create publishing calendar",
)
async def create_calendar(request: CalendarRequest, scheduling: SchedulingDep) -> CalendarResponse:
    calendar = scheduling.create_calendar(
        owner_id=request.owner_id,
        frequency=request.frequency,
        time_slots=[slot.model_dump() for slot in request.time_slots],
        platforms=request.platforms,
        series_id=request.series_id,
        category=request.category,
        is_active=request.is_active,
    )
    return CalendarResponse(**calendar)


@router.get(
    "/calendars",
    response_model=list[CalendarResponse],
    summary="List publishing calendars",
)
async def list_calendars(
    scheduling: SchedulingDep, owner_id: str | None = None
) -> list[CalendarResponse]:
    return [CalendarResponse(**c) for c in scheduling.list_calendars(owner_id=owner_id)]


@router.patch(
    "/calendars/{calendar_id}",
    response_model=CalendarResponse,
    summary="Update publishing calendar",
    description="Edit a calendar; its next trigger time is recomputed.",
)
async def update_calendar(
    calendar_id: UUID, request: CalendarUpdate, scheduling: SchedulingDep
) -> CalendarResponse:
    changes = request.model_dump(exclude_unset=True)
    calendar = scheduling.update_calendar(calendar_id, **changes)
    if calendar is None:
        raise _not_found("Publishing calendar")
    return CalendarResponse(**calendar)


@router.delete(
    "/calendars/{calendar_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete publishing calendar",
)
async def delete_calendar(calendar_id: UUID, scheduling: SchedulingDep) -> None:
    if not scheduling.delete_calendar(calendar_id):
        raise _not_found("Publishing calendar")


# =============================================================================
# Series generation and analytics
# =============================================================================


@router.post(
    "/series/{series_id}/generate-next",
    response_model=GenerateNextResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Generate next series video",
    description="Enqueue generation of the next video in a series from a discovered topic.",
)
async def trigger_generate_next(
    series_id: UUID,
    scheduling: SchedulingDep,
    request: GenerateNextRequest | None = None,
) -> GenerateNextResponse:
    platforms = request.platforms if request else []
    job_id = scheduling.trigger_generate_next(series_id, platforms or None)
    return GenerateNextResponse(
        series_id=series_id,
        job_id=job_id,
        message="Next video generation enqueued",
    )


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Scheduling analytics",
    description="Totals, per-platform breakdown and upcoming posts for an owner.",
)
async def get_analytics(owner_id: str, scheduling: SchedulingDep) -> AnalyticsResponse:
    return AnalyticsResponse(**scheduling.get_scheduling_analytics(owner_id))
