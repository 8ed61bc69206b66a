"""Domain models and business logic."""

from reelflow.domain.enums import (
    Frequency,
    JobState,
    JobType,
    MediaStatus,
    PipelineStage,
    Platform,
    ScheduledPostStatus,
    VideoStatus,
)
from reelflow.domain.models import (
    CaptionSegment,
    Job,
    MediaItem,
    Narration,
    PlatformResult,
    PublishOutcome,
    TimeSlot,
    Video,
)

__all__ = [
    "CaptionSegment",
    "Frequency",
    "Job",
    "JobState",
    "JobType",
    "MediaItem",
    "MediaStatus",
    "Narration",
    "PipelineStage",
    "Platform",
    "PlatformResult",
    "PublishOutcome",
    "ScheduledPostStatus",
    "TimeSlot",
    "Video",
    "VideoStatus",
]
