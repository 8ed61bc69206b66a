"""Video and series endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from reelflow.api.deps import QueueDep, SeriesStoreDep, VideoStoreDep
from reelflow.domain.enums import Frequency, JobType, VideoStatus
from reelflow.logging import get_logger

router = APIRouter(prefix="/videos", tags=["Videos"])
series_router = APIRouter(prefix="/series", tags=["Series"])
logger = get_logger(__name__)


# =============================================================================
# Schemas
# =============================================================================


class CreateVideoRequest(BaseModel):
    """Request to create a video."""

    owner_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255, description="Video topic")
    series_id: UUID | None = None
    script: str | None = Field(default=None, description="Use this script instead of generating one")
    generate: bool = Field(default=True, description="Enqueue content generation immediately")
    voice_id: str | None = None
    publish_platforms: list[str] = Field(
        default_factory=list,
        description="Publish automatically to these platforms once rendered",
    )


class VideoResponse(BaseModel):
    """A video and its generated content."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: str
    title: str
    status: VideoStatus
    series_id: UUID | None = None
    script: str | None = None
    media: list[dict[str, Any]] = Field(default_factory=list)
    narration: dict[str, Any] | None = None
    captions: list[dict[str, Any]] = Field(default_factory=list)
    hashtags: list[str] = Field(default_factory=list)
    thumbnail_url: str | None = None
    video_url: str | None = None
    scheduled_at: datetime | None = None
    published_at: datetime | None = None
    published_links: dict[str, str] = Field(default_factory=dict)
    publish_results: dict[str, Any] = Field(default_factory=dict)
    platform_optimizations: dict[str, Any] = Field(default_factory=dict)
    error_message: str | None = None
    failed_stage: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class VideoJobResponse(BaseModel):
    """A video together with the job enqueued for it."""

    video: VideoResponse
    job_id: UUID | None = None


class JobEnqueuedResponse(BaseModel):
    """Response when a video job is enqueued."""

    video_id: UUID
    job_id: UUID
    message: str


class BatchResponse(BaseModel):
    """Response when a batch is enqueued."""

    job_id: UUID
    topics: int
    message: str


class ScheduleVideoRequest(BaseModel):
    """Request to schedule a completed video."""

    scheduled_at: datetime
    platforms: list[str] = Field(..., min_length=1)


class PlatformsRequest(BaseModel):
    """Target platforms for publishing or optimization."""

    platforms: list[str] = Field(..., min_length=1)


class BatchGenerateRequest(BaseModel):
    """Request to generate several videos."""

    owner_id: str = Field(..., min_length=1)
    topics: list[str] = Field(..., min_length=1, max_length=50)
    series_id: UUID | None = None
    voice_id: str | None = None


class CreateSeriesRequest(BaseModel):
    """Request to create a series."""

    owner_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    frequency: Frequency = Frequency.WEEKLY


class SeriesResponse(BaseModel):
    """A series."""

    id: UUID
    owner_id: str
    title: str
    description: str | None = None
    frequency: Frequency
    created_at: datetime | None = None


def _to_response(video: Any) -> VideoResponse:
    return VideoResponse.model_validate(video)


# =============================================================================
# Videos
# =============================================================================


@router.post(
    "",
    response_model=VideoJobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create video",
    description="Create a draft video and, by default, enqueue its content generation.",
)
async def create_video(
    request: CreateVideoRequest, videos: VideoStoreDep, queue: QueueDep
) -> VideoJobResponse:
    video = videos.create(request.owner_id, request.title, request.series_id, request.script)

    job_id = None
    if request.generate:
        payload: dict[str, Any] = {"video_id": str(video.id)}
        if request.voice_id:
            payload["voice_id"] = request.voice_id
        if request.publish_platforms:
            payload["publish_platforms"] = request.publish_platforms
        job_id = queue.enqueue(JobType.GENERATE_CONTENT, payload)

    return VideoJobResponse(video=_to_response(video), job_id=job_id)


@router.post(
    "/batch",
    response_model=BatchResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Batch generate",
    description="Enqueue generation of one video per topic.",
)
async def batch_generate(request: BatchGenerateRequest, queue: QueueDep) -> BatchResponse:
    payload: dict[str, Any] = {"owner_id": request.owner_id, "topics": request.topics}
    if request.series_id:
        payload["series_id"] = str(request.series_id)
    if request.voice_id:
        payload["voice_id"] = request.voice_id
    job_id = queue.enqueue(JobType.BATCH_GENERATE, payload)
    logger.info("batch_generate_requested", topics=len(request.topics), job_id=str(job_id))
    return BatchResponse(
        job_id=job_id, topics=len(request.topics), message="Batch generation enqueued"
    )


@router.get(
    "",
    response_model=list[VideoResponse],
    summary="List videos",
)
async def list_videos(
    videos: VideoStoreDep,
    owner_id: str | None = None,
    series_id: UUID | None = None,
    video_status: VideoStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=500),
) -> list[VideoResponse]:
    found = videos.list_videos(
        owner_id=owner_id, series_id=series_id, status=video_status, limit=limit
    )
    return [_to_response(v) for v in found]


@router.get("/{video_id}", response_model=VideoResponse, summary="Get video")
async def get_video(video_id: UUID, videos: VideoStoreDep) -> VideoResponse:
    return _to_response(videos.get(video_id))


@router.delete(
    "/{video_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete video",
    description="Delete a video and its scheduled posts.",
)
async def delete_video(video_id: UUID, videos: VideoStoreDep) -> None:
    if not videos.delete(video_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")


@router.post(
    "/{video_id}/retry",
    response_model=VideoJobResponse,
    summary="Retry failed video",
    description="Return a failed video to draft or processing and enqueue generation again.",
)
async def retry_video(video_id: UUID, videos: VideoStoreDep, queue: QueueDep) -> VideoJobResponse:
    video = videos.retry(video_id)
    job_id = queue.enqueue(JobType.GENERATE_CONTENT, {"video_id": str(video_id)})
    return VideoJobResponse(video=_to_response(video), job_id=job_id)


def _enqueue_for_video(
    queue: QueueDep,
    videos: VideoStoreDep,
    video_id: UUID,
    job_type: JobType,
    payload: dict[str, Any],
) -> JobEnqueuedResponse:
    videos.get(video_id)
    job_id = queue.enqueue(job_type, {"video_id": str(video_id), **payload})
    return JobEnqueuedResponse(
        video_id=video_id, job_id=job_id, message=f"{job_type.value} job enqueued"
    )


@router.post(
    "/{video_id}/schedule",
    response_model=JobEnqueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Schedule video",
)
async def schedule_video(
    video_id: UUID, request: ScheduleVideoRequest, videos: VideoStoreDep, queue: QueueDep
) -> JobEnqueuedResponse:
    return _enqueue_for_video(
        queue,
        videos,
        video_id,
        JobType.SCHEDULE_VIDEO,
        {"scheduled_at": request.scheduled_at.isoformat(), "platforms": request.platforms},
    )


@router.post(
    "/{video_id}/publish",
    response_model=JobEnqueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Publish video",
)
async def publish_video(
    video_id: UUID, request: PlatformsRequest, videos: VideoStoreDep, queue: QueueDep
) -> JobEnqueuedResponse:
    return _enqueue_for_video(
        queue, videos, video_id, JobType.PUBLISH_VIDEO, {"platforms": request.platforms}
    )


@router.post(
    "/{video_id}/optimize",
    response_model=JobEnqueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Optimize for platforms",
)
async def optimize_video(
    video_id: UUID, request: PlatformsRequest, videos: VideoStoreDep, queue: QueueDep
) -> JobEnqueuedResponse:
    return _enqueue_for_video(
        queue, videos, video_id, JobType.OPTIMIZE_CONTENT, {"platforms": request.platforms}
    )


# =============================================================================
# Series
# =============================================================================


@series_router.post(
    "",
    response_model=SeriesResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create series",
)
async def create_series(request: CreateSeriesRequest, series: SeriesStoreDep) -> SeriesResponse:
    created = series.create(
        request.owner_id, request.title, request.description, request.frequency
    )
    return SeriesResponse(**created)


@series_router.get("/{series_id}", response_model=SeriesResponse, summary="Get series")
async def get_series(series_id: UUID, series: SeriesStoreDep) -> SeriesResponse:
    return SeriesResponse(**series.get(series_id))


@series_router.get(
    "/{series_id}/videos",
    response_model=list[VideoResponse],
    summary="List series videos",
)
async def list_series_videos(
    series_id: UUID, series: SeriesStoreDep, videos: VideoStoreDep
) -> list[VideoResponse]:
    series.get(series_id)
    return [_to_response(v) for v in videos.list_videos(series_id=series_id, limit=500)]


@series_router.delete(
    "/{series_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete series",
    description="Delete a series with its videos; calendars are detached.",
)
async def delete_series(series_id: UUID, series: SeriesStoreDep) -> None:
    if not series.delete(series_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Series not found")
