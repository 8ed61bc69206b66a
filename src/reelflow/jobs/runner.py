"""Worker pool that drains the job queue.

Each worker is an asyncio task that claims one job at a time, dispatches it
to the processor registered for its type, then acks or fails it. Queue
operations are synchronous database calls and run in a thread.
"""

import asyncio
from typing import Any
from uuid import uuid4

from reelflow.config import Settings
from reelflow.domain.models import Job
from reelflow.errors import DataError, is_retryable
from reelflow.jobs.processors import PROCESSORS, ProcessorContext, ProcessorSpec
from reelflow.logging import get_logger, job_log_context
from reelflow.services.job_queue import JobQueue

logger = get_logger(__name__)


async def execute_job(
    job: Job,
    queue: JobQueue,
    context: ProcessorContext,
    registry: dict[Any, ProcessorSpec] | None = None,
) -> dict[str, Any] | None:
    """Run one claimed job to completion and record the result.

    Returns:
        The processor outcome, or None when the attempt failed
    """
    registry = registry if registry is not None else PROCESSORS
    spec = registry.get(job.job_type)
    payload = dict(job.payload)

    with job_log_context(str(job.id), str(job.job_type), attempt=job.attempts + 1):
        try:
            if spec is None:
                raise DataError(f"No processor registered for {job.job_type}")
            outcome = await spec.handler(payload, context)
        except Exception as e:
            error = str(e) or type(e).__name__
            retryable = is_retryable(e)
            logger.warning(
                "job_attempt_failed",
                error=error,
                error_type=type(e).__name__,
                retryable=retryable,
            )
            failed = await asyncio.to_thread(queue.fail, job.id, error, retryable, payload)
            if failed.is_dead and spec is not None and spec.on_dead_letter is not None:
                try:
                    await asyncio.to_thread(spec.on_dead_letter, failed, error, context)
                except Exception as hook_error:
                    logger.exception("dead_letter_hook_failed", error=str(hook_error))
            return None

        await asyncio.to_thread(queue.ack, job.id)
        return outcome


async def run_once(
    queue: JobQueue,
    context: ProcessorContext,
    worker_id: str = "inline",
) -> Job | None:
    """Claim and run a single job, if one is eligible.

    Returns:
        The job that ran, or None when the queue had nothing eligible
    """
    job = await asyncio.to_thread(queue.dequeue_next, worker_id)
    if job is None:
        return None
    await execute_job(job, queue, context)
    return job


async def drain(queue: JobQueue, context: ProcessorContext, max_jobs: int = 100) -> int:
    """Run eligible jobs one after another until none is left or max_jobs ran."""
    processed = 0
    while processed < max_jobs:
        if await run_once(queue, context) is None:
            break
        processed += 1
    return processed


class WorkerPool:
    """N concurrent workers, each running at most one job at a time."""

    def __init__(
        self,
        queue: JobQueue,
        context: ProcessorContext,
        concurrency: int | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.queue = queue
        self.context = context
        self.settings = settings or context.settings
        self.concurrency = concurrency or self.settings.worker_concurrency
        self.pool_id = uuid4().hex[:8]
        self._stopping = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def _idle(self) -> None:
        try:
            await asyncio.wait_for(
                self._stopping.wait(), timeout=self.settings.queue_poll_interval_seconds
            )
        except TimeoutError:
            pass

    async def _worker(self, worker_id: str) -> None:
        logger.info("worker_started", worker_id=worker_id)
        while not self._stopping.is_set():
            try:
                job = await asyncio.to_thread(self.queue.dequeue_next, worker_id)
            except Exception as e:
                logger.exception("worker_dequeue_failed", worker_id=worker_id, error=str(e))
                await self._idle()
                continue

            if job is None:
                await self._idle()
                continue

            try:
                await execute_job(job, self.queue, self.context)
            except Exception as e:
                logger.exception(
                    "worker_job_failed", worker_id=worker_id, job_id=str(job.id), error=str(e)
                )
        logger.info("worker_stopped", worker_id=worker_id)

    async def start(self) -> None:
        """Recover orphaned jobs and start the workers."""
        if self.running:
            return
        self._stopping.clear()
        await asyncio.to_thread(self.queue.recover_stale, self.settings.queue_stale_after_seconds)
        self._tasks = [
            asyncio.create_task(self._worker(f"{self.pool_id}-{i}"), name=f"worker-{i}")
            for i in range(self.concurrency)
        ]
        logger.info("worker_pool_started", pool_id=self.pool_id, concurrency=self.concurrency)

    async def stop(self) -> None:
        """Let in-flight jobs finish, then stop.

        Workers still busy after ``worker_shutdown_timeout_seconds`` are
        cancelled; their jobs stay running until recover_stale re-queues them.
        """
        self._stopping.set()
        if self._tasks:
            _, pending = await asyncio.wait(
                self._tasks, timeout=self.settings.worker_shutdown_timeout_seconds
            )
            for task in pending:
                task.cancel()
            if pending:
                logger.warning("worker_pool_forced_stop", cancelled=len(pending))
                await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        logger.info("worker_pool_stopped", pool_id=self.pool_id)

    async def run_forever(self) -> None:
        """Start the workers and block until they are stopped."""
        await self.start()
        await asyncio.gather(*self._tasks, return_exceptions=True)
