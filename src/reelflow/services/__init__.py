"""Application services."""

from reelflow.services.content_generator import ContentGenerator, estimate_timestamps
from reelflow.services.job_queue import JobQueue, compute_backoff
from reelflow.services.publish_orchestrator import PublishOrchestrator, publish_video_entity
from reelflow.services.scheduler import SchedulerLoop
from reelflow.services.scheduling import SchedulingService, calculate_next_scheduled_time
from reelflow.services.storage import StorageService
from reelflow.services.videos import SeriesStore, VideoStore

__all__ = [
    "ContentGenerator",
    "JobQueue",
    "PublishOrchestrator",
    "SchedulerLoop",
    "SchedulingService",
    "SeriesStore",
    "StorageService",
    "VideoStore",
    "calculate_next_scheduled_time",
    "compute_backoff",
    "estimate_timestamps",
    "publish_video_entity",
]
