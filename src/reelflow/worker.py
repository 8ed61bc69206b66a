"""Celery worker configuration."""

from celery import Celery

from reelflow.config import settings
from reelflow.logging import setup_logging

# Setup logging before anything else
setup_logging()

# Create Celery app
celery_app = Celery(
    "reelflow",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=600,  # 10 minutes max
    task_soft_time_limit=540,  # 9 minutes soft limit
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.worker_concurrency,
    # Result backend
    result_expires=86400,  # 24 hours
    # Task routing
    task_routes={
        "scheduler.scan_due_posts": {"queue": "high"},
        "scheduler.scan_calendars": {"queue": "default"},
        "queue.drain": {"queue": "default"},
    },
    # Beat scheduler (periodic due scans)
    beat_schedule={
        "scan-due-posts": {
            "task": "scheduler.scan_due_posts",
            "schedule": settings.post_scan_interval_seconds,
            "options": {"queue": "high"},
        },
        "scan-calendars": {
            "task": "scheduler.scan_calendars",
            "schedule": settings.calendar_scan_interval_seconds,
            "options": {"queue": "default"},
        },
        "drain-job-queue": {
            "task": "queue.drain",
            "schedule": 30.0,
            "args": (50,),  # max_jobs
            "options": {"queue": "default"},
        },
    },
)

# Auto-discover tasks
celery_app.autodiscover_tasks(["reelflow.jobs"])
