"""Job queue endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from reelflow.api.deps import QueueDep
from reelflow.domain.enums import JobState, JobType
from reelflow.logging import get_logger

router = APIRouter(prefix="/jobs", tags=["Jobs"])
logger = get_logger(__name__)


class EnqueueJobRequest(BaseModel):
    """Request to enqueue a job."""

    job_type: JobType
    payload: dict[str, Any] = Field(default_factory=dict)
    priority: int = Field(default=0, description="Higher runs sooner")
    delay_seconds: float = Field(default=0, ge=0, description="Seconds before the job is visible")
    max_attempts: int | None = Field(default=None, ge=1, le=20)


class JobResponse(BaseModel):
    """Response when a job is enqueued."""

    job_id: UUID
    status: str
    message: str


class JobStatusResponse(BaseModel):
    """Job status details."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    job_type: JobType
    state: JobState
    payload: dict[str, Any]
    priority: int
    attempts: int
    max_attempts: int
    last_error: str | None = None
    worker_id: str | None = None
    enqueued_at: datetime | None = None
    available_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Enqueue job",
    description="Add a job to the durable queue.",
)
async def enqueue_job(request: EnqueueJobRequest, queue: QueueDep) -> JobResponse:
    """Enqueue a job for the worker pool."""
    job_id = queue.enqueue(
        request.job_type,
        request.payload,
        priority=request.priority,
        delay=request.delay_seconds,
        max_attempts=request.max_attempts,
    )
    return JobResponse(
        job_id=job_id,
        status=JobState.QUEUED.value,
        message=f"{request.job_type.value} job enqueued successfully",
    )


@router.get(
    "/stats",
    summary="Queue statistics",
    description="Number of jobs in each state.",
)
async def queue_stats(queue: QueueDep) -> dict[str, int]:
    return queue.stats()


@router.get(
    "",
    response_model=list[JobStatusResponse],
    summary="List jobs",
    description="List jobs, newest first, optionally filtered by state and type.",
)
async def list_jobs(
    queue: QueueDep,
    state: JobState | None = None,
    job_type: JobType | None = None,
    limit: int = Query(default=50, ge=1, le=500),
) -> list[JobStatusResponse]:
    jobs = queue.list_jobs(state=state, job_type=job_type, limit=limit)
    return [JobStatusResponse.model_validate(job) for job in jobs]


@router.get(
    "/{job_id}",
    response_model=JobStatusResponse,
    summary="Get job status",
    description="Get the state, attempts and last error of a job.",
)
async def get_job_status(job_id: UUID, queue: QueueDep) -> JobStatusResponse:
    job = queue.get(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return JobStatusResponse.model_validate(job)


@router.delete(
    "/{job_id}",
    response_model=JobResponse,
    summary="Cancel job",
    description="Cancel a queued job. Running and finished jobs cannot be cancelled.",
)
async def cancel_job(job_id: UUID, queue: QueueDep) -> JobResponse:
    job = queue.get(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    if not queue.cancel(job_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Job is {job.state} and cannot be cancelled",
        )

    logger.info("job_cancel_requested", job_id=str(job_id))
    return JobResponse(
        job_id=job_id,
        status=JobState.CANCELLED.value,
        message="Job cancelled",
    )
