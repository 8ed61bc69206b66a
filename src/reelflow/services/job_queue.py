"""Durable, table-backed job queue.

Delivery is at-least-once. A job is visible to workers while it is ``queued``
and ``available_at <= now``; workers see the highest priority first and, within
a priority, the oldest job first. Claiming is a conditional update guarded by
``state = 'queued'`` so two workers can never both win the same job.

Failed attempts are re-queued with exponential backoff until ``max_attempts``
is reached, at which point the job is dead-lettered and never dispatched again.
"""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from reelflow.config import Settings, get_settings
from reelflow.db.models import JobModel
from reelflow.db.session import session_scope
from reelflow.domain.enums import JobState, JobType
from reelflow.domain.models import Job
from reelflow.errors import EntityNotFoundError
from reelflow.logging import get_logger
from reelflow.utils.time import ensure_utc, utcnow

logger = get_logger(__name__)

# Candidates fetched per claim round; losing every one of them triggers a new round
_CLAIM_BATCH = 5
_MAX_CLAIM_ROUNDS = 10


def compute_backoff(attempt: int, base: float, cap: float) -> float:
    """Delay in seconds before the next attempt: ``min(base * 2**attempt, cap)``."""
    return min(base * (2**attempt), cap)


def _to_domain(model: JobModel) -> Job:
    return Job(
        id=model.id,
        job_type=JobType(model.job_type),
        payload=dict(model.payload or {}),
        state=JobState(model.state),
        priority=model.priority,
        attempts=model.attempts,
        max_attempts=model.max_attempts,
        last_error=model.last_error,
        worker_id=model.worker_id,
        enqueued_at=ensure_utc(model.enqueued_at),
        available_at=ensure_utc(model.available_at),
        started_at=ensure_utc(model.started_at),
        finished_at=ensure_utc(model.finished_at),
    )


class JobQueue:
    """Job queue operations over the ``jobs`` table.

    Each method runs in its own short transaction, so the queue is safe to
    share between worker threads.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    def enqueue(
        self,
        job_type: JobType | str,
        payload: dict[str, Any] | None = None,
        priority: int = 0,
        delay: float = 0,
        max_attempts: int | None = None,
    ) -> UUID:
        """Add a job to the queue.

        Args:
            job_type: Processor that will handle the job
            payload: JSON-serializable job arguments
            priority: Higher runs sooner
            delay: Seconds before the job becomes visible (negative values count as 0)
            max_attempts: Attempts before dead-lettering (defaults to settings)

        Returns:
            The new job id
        """
        job_type = JobType(job_type)
        now = utcnow()
        job = JobModel(
            job_type=job_type.value,
            payload=payload or {},
            priority=priority,
            state=JobState.QUEUED.value,
            attempts=0,
            max_attempts=max_attempts or self.settings.queue_default_max_attempts,
            enqueued_at=now,
            available_at=now + timedelta(seconds=max(delay, 0)),
        )
        with session_scope(self.session_factory) as session:
            session.add(job)
            session.flush()
            job_id = job.id

        logger.info(
            "job_enqueued",
            job_id=str(job_id),
            job_type=job_type.value,
            priority=priority,
            delay=max(delay, 0),
        )
        return job_id

    def dequeue_next(self, worker_id: str, now: datetime | None = None) -> Job | None:
        """Claim the next eligible job for a worker.

        Returns:
            The claimed job, now ``running``, or None when nothing is eligible
        """
        for _ in range(_MAX_CLAIM_ROUNDS):
            claim_time = now or utcnow()
            with session_scope(self.session_factory) as session:
                candidates = session.scalars(
                    select(JobModel.id)
                    .where(
                        JobModel.state == JobState.QUEUED.value,
                        JobModel.available_at <= claim_time,
                    )
                    .order_by(JobModel.priority.desc(), JobModel.enqueued_at.asc())
                    .limit(_CLAIM_BATCH)
                ).all()

            if not candidates:
                return None

            for job_id in candidates:
                with session_scope(self.session_factory) as session:
                    result = session.execute(
                        update(JobModel)
                        .where(JobModel.id == job_id, JobModel.state == JobState.QUEUED.value)
                        .values(
                            state=JobState.RUNNING.value,
                            worker_id=worker_id,
                            started_at=claim_time,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        # Another worker won this one
                        continue
                    job = session.get(JobModel, job_id)
                    claimed = _to_domain(job)

                logger.info(
                    "job_claimed",
                    job_id=str(claimed.id),
                    job_type=claimed.job_type,
                    worker_id=worker_id,
                    attempt=claimed.attempts + 1,
                )
                return claimed

        logger.warning("job_claim_contention", worker_id=worker_id)
        return None

    def ack(self, job_id: UUID) -> None:
        """Mark a running job completed."""
        with session_scope(self.session_factory) as session:
            result = session.execute(
                update(JobModel)
                .where(JobModel.id == job_id, JobModel.state == JobState.RUNNING.value)
                .values(state=JobState.COMPLETED.value, finished_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                job = session.get(JobModel, job_id)
                if job is None:
                    raise EntityNotFoundError("Job", job_id)
                logger.warning("job_ack_ignored", job_id=str(job_id), state=job.state)
                return

        logger.info("job_completed", job_id=str(job_id))

    def fail(
        self,
        job_id: UUID,
        error: str,
        retryable: bool = True,
        payload: dict[str, Any] | None = None,
    ) -> Job:
        """Record a failed attempt.

        The job is re-queued with backoff while attempts remain and the error is
        retryable; otherwise it becomes ``dead``.

        Args:
            job_id: Job that failed
            error: Error message kept as last_error
            retryable: False dead-letters the job immediately
            payload: Replacement payload, so the next attempt resumes from
                checkpoints the processor recorded (e.g. a created video id)

        Returns:
            The job after the update (check ``is_dead``)
        """
        with session_scope(self.session_factory) as session:
            job = session.get(JobModel, job_id, with_for_update=True)
            if job is None:
                raise EntityNotFoundError("Job", job_id)

            now = utcnow()
            job.attempts = min(job.attempts + 1, job.max_attempts)
            job.last_error = error
            job.worker_id = None
            if payload is not None:
                job.payload = payload

            if retryable and job.attempts < job.max_attempts:
                backoff = compute_backoff(
                    job.attempts,
                    self.settings.queue_backoff_base_seconds,
                    self.settings.queue_backoff_max_seconds,
                )
                job.state = JobState.QUEUED.value
                job.available_at = now + timedelta(seconds=backoff)
                job.started_at = None
            else:
                backoff = None
                job.state = JobState.DEAD.value
                job.finished_at = now

            session.flush()
            failed = _to_domain(job)

        if failed.is_dead:
            logger.error(
                "job_dead_lettered",
                job_id=str(failed.id),
                job_type=failed.job_type,
                attempts=failed.attempts,
                retryable=retryable,
                error=error,
            )
        else:
            logger.warning(
                "job_retry_scheduled",
                job_id=str(failed.id),
                job_type=failed.job_type,
                attempts=failed.attempts,
                backoff_seconds=backoff,
                error=error,
            )
        return failed

    def cancel(self, job_id: UUID) -> bool:
        """Cancel a queued job. Running and finished jobs are left untouched."""
        with session_scope(self.session_factory) as session:
            result = session.execute(
                update(JobModel)
                .where(JobModel.id == job_id, JobModel.state == JobState.QUEUED.value)
                .values(state=JobState.CANCELLED.value, finished_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            cancelled = result.rowcount == 1

        if cancelled:
            logger.info("job_cancelled", job_id=str(job_id))
        return cancelled

    def recover_stale(self, older_than_seconds: float, now: datetime | None = None) -> int:
        """Re-queue running jobs whose worker disappeared.

        A job still ``running`` long after it started belongs to a worker that
        died mid-job; it is made visible again without consuming an attempt.

        Returns:
            Number of jobs re-queued
        """
        now = now or utcnow()
        cutoff = now - timedelta(seconds=older_than_seconds)
        with session_scope(self.session_factory) as session:
            result = session.execute(
                update(JobModel)
                .where(JobModel.state == JobState.RUNNING.value, JobModel.started_at < cutoff)
                .values(
                    state=JobState.QUEUED.value,
                    worker_id=None,
                    started_at=None,
                    available_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            recovered = result.rowcount

        if recovered:
            logger.warning("stale_jobs_recovered", count=recovered)
        return recovered

    def get(self, job_id: UUID) -> Job | None:
        with session_scope(self.session_factory) as session:
            job = session.get(JobModel, job_id)
            return _to_domain(job) if job else None

    def list_jobs(
        self,
        state: JobState | str | None = None,
        job_type: JobType | str | None = None,
        limit: int = 50,
    ) -> list[Job]:
        """List jobs, newest first."""
        query = select(JobModel).order_by(JobModel.enqueued_at.desc()).limit(limit)
        if state:
            query = query.where(JobModel.state == JobState(state).value)
        if job_type:
            query = query.where(JobModel.job_type == JobType(job_type).value)

        with session_scope(self.session_factory) as session:
            return [_to_domain(job) for job in session.scalars(query)]

    def stats(self) -> dict[str, int]:
        """Count jobs per state (every state is present, zero when empty)."""
        counts = {state.value: 0 for state in JobState}
        with session_scope(self.session_factory) as session:
            rows = session.execute(
                select(JobModel.state, func.count()).group_by(JobModel.state)
            ).all()
        for state, count in rows:
            counts[state] = count
        return counts
