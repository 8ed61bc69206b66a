"""Video status state machine.

draft -> processing -> completed -> scheduled -> publishing -> published

processing, completed, scheduled and publishing may fall to failed. A failed
video only leaves that state through an explicit retry. published is terminal.
"""

from typing import Any

from reelflow.domain.enums import PipelineStage, VideoStatus
from reelflow.errors import InvalidTransitionError

TRANSITIONS: dict[VideoStatus, frozenset[VideoStatus]] = {
    VideoStatus.DRAFT: frozenset({VideoStatus.PROCESSING}),
    VideoStatus.PROCESSING: frozenset({VideoStatus.COMPLETED, VideoStatus.FAILED}),
    VideoStatus.COMPLETED: frozenset(
        {VideoStatus.SCHEDULED, VideoStatus.PUBLISHING, VideoStatus.FAILED}
    ),
    VideoStatus.SCHEDULED: frozenset(
        {VideoStatus.PUBLISHING, VideoStatus.COMPLETED, VideoStatus.FAILED}
    ),
    VideoStatus.PUBLISHING: frozenset({VideoStatus.PUBLISHED, VideoStatus.FAILED}),
    VideoStatus.PUBLISHED: frozenset(),
    # Only reachable through retry_target()
    VideoStatus.FAILED: frozenset({VideoStatus.PROCESSING, VideoStatus.DRAFT}),
}

TERMINAL_STATUSES = frozenset({VideoStatus.PUBLISHED})

# Statuses that require a rendered video file
RENDERED_STATUSES = frozenset(
    {
        VideoStatus.COMPLETED,
        VideoStatus.SCHEDULED,
        VideoStatus.PUBLISHING,
        VideoStatus.PUBLISHED,
    }
)

# Stages that fail before any script exists restart from draft
_PRE_SCRIPT_STAGES = frozenset({PipelineStage.SCRIPT})


def can_transition(current: str, target: str) -> bool:
    """Check whether a status change is allowed."""
    return VideoStatus(target) in TRANSITIONS[VideoStatus(current)]


def ensure_transition(current: str, target: str) -> VideoStatus:
    """Validate a status change and return the target status.

    Raises:
        InvalidTransitionError: If the change is not allowed.
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    return VideoStatus(target)


def retry_target(failed_stage: str | None, has_script: bool) -> VideoStatus:
    """Status a failed video returns to when a user retries it."""
    if not has_script or failed_stage in _PRE_SCRIPT_STAGES:
        return VideoStatus.DRAFT
    return VideoStatus.PROCESSING


def consistency_errors(status: str, fields: dict[str, Any]) -> list[str]:
    """List violations of the status/derived-field invariants.

    Args:
        status: Current video status.
        fields: Mapping with at least video_url, scheduled_at and published_at.

    Returns:
        Human-readable problems; empty when consistent.
    """
    problems = []
    current = VideoStatus(status)

    if current in RENDERED_STATUSES and not fields.get("video_url"):
        problems.append(f"status {current} requires video_url")
    if current == VideoStatus.SCHEDULED and not fields.get("scheduled_at"):
        problems.append("status scheduled requires scheduled_at")
    if current == VideoStatus.PUBLISHED and not fields.get("published_at"):
        problems.append("status published requires published_at")

    return problems
