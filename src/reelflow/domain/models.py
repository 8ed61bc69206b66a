"""Domain models - pure Python classes independent of database."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from reelflow.domain.enums import JobState, JobType, Platform


@dataclass
class MediaItem:
    """A visual asset used by a video, in display order."""

    type: str
    url: str
    source: str = "generated"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Narration:
    """Voice narration attached to a video."""

    voice_id: str
    text: str
    audio_url: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CaptionSegment:
    """One caption line with its estimated timing (seconds)."""

    text: str
    start_time: float
    end_time: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TimeSlot:
    """A recurring publish slot. day_of_week uses 0 = Sunday .. 6 = Saturday."""

    day_of_week: int
    hour: int
    minute: int

    def __post_init__(self) -> None:
        if not 0 <= self.day_of_week <= 6:
            raise ValueError(f"day_of_week must be 0-6, got {self.day_of_week}")
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour must be 0-23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute must be 0-59, got {self.minute}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeSlot":
        return cls(
            day_of_week=int(data.get("day_of_week", 0)),
            hour=int(data["hour"]),
            minute=int(data.get("minute", 0)),
        )

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class PlatformResult:
    """Outcome of publishing to a single platform."""

    platform: str
    success: bool
    url: str | None = None
    platform_media_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.success:
            data["url"] = self.url
            data["platform_media_id"] = self.platform_media_id
        else:
            data["error"] = self.error
        return data


@dataclass
class PublishOutcome:
    """Merged per-platform result of a multi-platform publish."""

    results: dict[str, PlatformResult] = field(default_factory=dict)

    @property
    def any_success(self) -> bool:
        """A publish counts as successful when at least one platform succeeded."""
        return any(r.success for r in self.results.values())

    @property
    def links(self) -> dict[str, str]:
        return {p: r.url for p, r in self.results.items() if r.success and r.url}

    @property
    def errors(self) -> dict[str, str]:
        return {p: r.error or "unknown error" for p, r in self.results.items() if not r.success}

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {platform: result.to_dict() for platform, result in self.results.items()}


@dataclass
class Job:
    """A queued job as seen by workers."""

    id: UUID
    job_type: JobType
    payload: dict[str, Any]
    state: JobState
    priority: int = 0
    attempts: int = 0
    max_attempts: int = 3
    last_error: str | None = None
    worker_id: str | None = None
    enqueued_at: datetime | None = None
    available_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def is_dead(self) -> bool:
        return self.state == JobState.DEAD


def normalize_platforms(platforms: list[str]) -> list[str]:
    """Lower-case platform names, dropping duplicates but keeping order."""
    seen: list[str] = []
    for platform in platforms:
        name = platform.strip().lower()
        if name and name not in seen:
            seen.append(name)
    return seen


SUPPORTED_PLATFORMS = frozenset(p.value for p in Platform)


@dataclass
class Video:
    """Snapshot of a persisted video."""

    id: UUID
    owner_id: str
    title: str
    status: str
    series_id: UUID | None = None
    script: str | None = None
    media: list[dict[str, Any]] = field(default_factory=list)
    narration: dict[str, Any] | None = None
    captions: list[dict[str, Any]] = field(default_factory=list)
    hashtags: list[str] = field(default_factory=list)
    thumbnail_url: str | None = None
    video_url: str | None = None
    scheduled_at: datetime | None = None
    published_at: datetime | None = None
    published_links: dict[str, str] = field(default_factory=dict)
    publish_results: dict[str, Any] = field(default_factory=dict)
    platform_optimizations: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    failed_stage: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_script(self) -> bool:
        return bool(self.script and self.script.strip())
