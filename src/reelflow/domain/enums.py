"""Domain enumerations."""

from enum import StrEnum


class VideoStatus(StrEnum):
    """Status of a video in the pipeline."""

    DRAFT = "draft"
    PROCESSING = "processing"
    COMPLETED = "completed"
    SCHEDULED = "scheduled"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"


class Platform(StrEnum):
    """Supported publishing platforms."""

    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    FACEBOOK = "facebook"


class JobType(StrEnum):
    """Types of background jobs."""

    GENERATE_CONTENT = "generate-content"
    RENDER_VIDEO = "render-video"
    SCHEDULE_VIDEO = "schedule-video"
    PUBLISH_VIDEO = "publish-video"
    OPTIMIZE_CONTENT = "optimize-content"
    BATCH_GENERATE = "batch-generate"


class JobState(StrEnum):
    """Lifecycle state of a queued job."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    DEAD = "dead"
    CANCELLED = "cancelled"


class ScheduledPostStatus(StrEnum):
    """Status of a one-shot scheduled post."""

    PENDING = "pending"
    PROCESSING = "processing"
    PUBLISHED = "published"
    FAILED = "failed"


class Frequency(StrEnum):
    """Recurrence frequency for series and publishing calendars."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class MediaStatus(StrEnum):
    """Processing state of media submitted to a platform."""

    PENDING = "PENDING"
    FINISHED = "FINISHED"
    ERROR = "ERROR"


class PipelineStage(StrEnum):
    """Pipeline stage recorded on a video when it fails."""

    SCRIPT = "script"
    MEDIA = "media"
    NARRATION = "narration"
    HASHTAGS = "hashtags"
    THUMBNAIL = "thumbnail"
    RENDER = "render"
    SCHEDULE = "schedule"
    PUBLISH = "publish"
