"""Celery tasks driving the scheduler scans and the job queue.

These call the same functions as the in-process SchedulerLoop and WorkerPool;
claims are conditional updates, so running both is safe.
"""

from typing import Any

from reelflow.jobs.processors import build_context
from reelflow.jobs.runner import drain
from reelflow.logging import get_logger
from reelflow.utils import run_async
from reelflow.worker import celery_app

logger = get_logger(__name__)


@celery_app.task(bind=True, name="scheduler.scan_due_posts")
def scan_due_posts_task(self: Any) -> dict[str, int]:
    """Publish scheduled posts whose time has come."""
    logger.info("scan_due_posts_started", task_id=self.request.id)
    context = build_context()
    return run_async(context.scheduling.process_due_posts(context.orchestrator))


@celery_app.task(bind=True, name="scheduler.scan_calendars")
def scan_calendars_task(self: Any) -> dict[str, int]:
    """Trigger generation for publishing calendars that are due."""
    logger.info("scan_calendars_started", task_id=self.request.id)
    context = build_context()
    return context.scheduling.process_due_calendars()


@celery_app.task(bind=True, name="queue.drain")
def drain_queue_task(self: Any, max_jobs: int = 50) -> dict[str, Any]:
    """Run eligible queued jobs until the queue is empty or max_jobs ran."""
    context = build_context()
    processed = run_async(drain(context.queue, context, max_jobs=max_jobs))
    logger.info("drain_queue_completed", task_id=self.request.id, processed=processed)
    return {"processed": processed}
