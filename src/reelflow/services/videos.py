"""Video and series persistence.

All status changes go through the state machine. Updates are
read-modify-write against the latest row inside one short transaction, so
concurrent writers resolve as last-writer-wins.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from reelflow.db.models import SeriesModel, VideoModel
from reelflow.db.session import session_scope
from reelflow.domain.enums import Frequency, VideoStatus
from reelflow.domain.models import Video
from reelflow.domain.state_machine import consistency_errors, ensure_transition, retry_target
from reelflow.errors import DataError, EntityNotFoundError, InvalidTransitionError
from reelflow.logging import get_logger
from reelflow.utils.time import ensure_utc

logger = get_logger(__name__)

# Columns callers may set through update()/transition()
_WRITABLE_FIELDS = frozenset(
    {
        "title",
        "script",
        "media",
        "narration",
        "captions",
        "hashtags",
        "thumbnail_url",
        "video_url",
        "scheduled_at",
        "published_at",
        "published_links",
        "publish_results",
        "platform_optimizations",
        "error_message",
        "failed_stage",
    }
)


def video_from_model(model: VideoModel) -> Video:
    return Video(
        id=model.id,
        owner_id=model.owner_id,
        title=model.title,
        status=model.status,
        series_id=model.series_id,
        script=model.script,
        media=list(model.media or []),
        narration=dict(model.narration) if model.narration else None,
        captions=list(model.captions or []),
        hashtags=list(model.hashtags or []),
        thumbnail_url=model.thumbnail_url,
        video_url=model.video_url,
        scheduled_at=ensure_utc(model.scheduled_at),
        published_at=ensure_utc(model.published_at),
        published_links=dict(model.published_links or {}),
        publish_results=dict(model.publish_results or {}),
        platform_optimizations=dict(model.platform_optimizations or {}),
        error_message=model.error_message,
        failed_stage=model.failed_stage,
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
    )


def _apply_fields(model: VideoModel, fields: dict[str, Any]) -> None:
    unknown = set(fields) - _WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown video fields: {sorted(unknown)}")
    for name, value in fields.items():
        setattr(model, name, value)


def _check_consistency(model: VideoModel) -> None:
    problems = consistency_errors(
        model.status,
        {
            "video_url": model.video_url,
            "scheduled_at": model.scheduled_at,
            "published_at": model.published_at,
        },
    )
    if problems:
        raise DataError("; ".join(problems))


class VideoStore:
    """CRUD and state transitions for videos."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self.session_factory = session_factory

    def _load(self, session: Session, video_id: UUID) -> VideoModel:
        video = session.get(VideoModel, video_id)
        if video is None:
            raise EntityNotFoundError("Video", video_id)
        return video

    def create(
        self,
        owner_id: str,
        title: str,
        series_id: UUID | None = None,
        script: str | None = None,
    ) -> Video:
        """Create a draft video."""
        with session_scope(self.session_factory) as session:
            if series_id is not None and session.get(SeriesModel, series_id) is None:
                raise EntityNotFoundError("Series", series_id)
            video = VideoModel(
                owner_id=owner_id,
                title=title,
                series_id=series_id,
                script=script,
                status=VideoStatus.DRAFT.value,
                media=[],
                captions=[],
                hashtags=[],
                published_links={},
                publish_results={},
                platform_optimizations={},
            )
            session.add(video)
            session.flush()
            created = video_from_model(video)

        logger.info("video_created", video_id=str(created.id), series_id=str(series_id or ""))
        return created

    def get(self, video_id: UUID) -> Video:
        """Load a video.

        Raises:
            EntityNotFoundError: No such video
        """
        with session_scope(self.session_factory) as session:
            return video_from_model(self._load(session, video_id))

    def find(self, video_id: UUID) -> Video | None:
        with session_scope(self.session_factory) as session:
            video = session.get(VideoModel, video_id)
            return video_from_model(video) if video else None

    def list_videos(
        self,
        owner_id: str | None = None,
        series_id: UUID | None = None,
        status: VideoStatus | str | None = None,
        limit: int = 50,
    ) -> list[Video]:
        query = select(VideoModel).order_by(VideoModel.created_at.desc()).limit(limit)
        if owner_id:
            query = query.where(VideoModel.owner_id == owner_id)
        if series_id:
            query = query.where(VideoModel.series_id == series_id)
        if status:
            query = query.where(VideoModel.status == VideoStatus(status).value)
        with session_scope(self.session_factory) as session:
            return [video_from_model(v) for v in session.scalars(query)]

    def update(self, video_id: UUID, **fields: Any) -> Video:
        """Write fields without changing status (used for partial pipeline results)."""
        with session_scope(self.session_factory) as session:
            video = self._load(session, video_id)
            _apply_fields(video, fields)
            _check_consistency(video)
            session.flush()
            return video_from_model(video)

    def transition(
        self,
        video_id: UUID,
        target: VideoStatus | str,
        allow_same: bool = False,
        **fields: Any,
    ) -> Video:
        """Move a video to a new status, writing fields in the same transaction.

        Args:
            video_id: Video to change
            target: New status
            allow_same: Treat "already in target status" as success (idempotent re-runs)
            **fields: Column values written together with the status

        Raises:
            InvalidTransitionError: The state machine forbids the change
            DataError: The resulting row violates a status/field invariant
        """
        target = VideoStatus(target)
        with session_scope(self.session_factory) as session:
            video = self._load(session, video_id)
            previous = video.status
            if not (allow_same and previous == target.value):
                ensure_transition(previous, target)
            _apply_fields(video, fields)
            video.status = target.value
            _check_consistency(video)
            session.flush()
            updated = video_from_model(video)

        if previous != target.value:
            logger.info(
                "video_status_changed",
                video_id=str(video_id),
                from_status=previous,
                to_status=target.value,
            )
        return updated

    def mark_failed(self, video_id: UUID, error: str, stage: str | None = None) -> Video | None:
        """Move a video to ``failed`` with the error and the stage that failed.

        Videos whose status cannot move to failed (draft, failed, published)
        are left unchanged and None is returned.
        """
        try:
            video = self.transition(
                video_id,
                VideoStatus.FAILED,
                error_message=error,
                failed_stage=stage,
            )
        except InvalidTransitionError as e:
            logger.warning("video_mark_failed_skipped", video_id=str(video_id), reason=str(e))
            return None
        except EntityNotFoundError:
            logger.warning("video_mark_failed_missing", video_id=str(video_id))
            return None

        logger.error("video_failed", video_id=str(video_id), stage=stage, error=error)
        return video

    def retry(self, video_id: UUID) -> Video:
        """Return a failed video to draft or processing so it can run again.

        Raises:
            InvalidTransitionError: The video is not failed
        """
        with session_scope(self.session_factory) as session:
            video = self._load(session, video_id)
            if video.status != VideoStatus.FAILED.value:
                raise InvalidTransitionError(video.status, "retry")
            target = retry_target(video.failed_stage, bool(video.script and video.script.strip()))
            ensure_transition(video.status, target)
            video.status = target.value
            video.error_message = None
            video.failed_stage = None
            session.flush()
            retried = video_from_model(video)

        logger.info("video_retried", video_id=str(video_id), status=retried.status)
        return retried

    def delete(self, video_id: UUID) -> bool:
        """Delete a video and its scheduled posts."""
        with session_scope(self.session_factory) as session:
            video = session.get(VideoModel, video_id)
            if video is None:
                return False
            session.delete(video)

        logger.info("video_deleted", video_id=str(video_id))
        return True


class SeriesStore:
    """CRUD for series."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self.session_factory = session_factory

    def create(
        self,
        owner_id: str,
        title: str,
        description: str | None = None,
        frequency: Frequency | str = Frequency.WEEKLY,
    ) -> dict[str, Any]:
        with session_scope(self.session_factory) as session:
            series = SeriesModel(
                owner_id=owner_id,
                title=title,
                description=description,
                frequency=Frequency(frequency).value,
            )
            session.add(series)
            session.flush()
            created = self._to_dict(series)

        logger.info("series_created", series_id=str(created["id"]))
        return created

    def get(self, series_id: UUID) -> dict[str, Any]:
        with session_scope(self.session_factory) as session:
            series = session.get(SeriesModel, series_id)
            if series is None:
                raise EntityNotFoundError("Series", series_id)
            return self._to_dict(series)

    def delete(self, series_id: UUID) -> bool:
        """Delete a series with its videos (and their posts); calendars are detached."""
        with session_scope(self.session_factory) as session:
            series = session.get(SeriesModel, series_id)
            if series is None:
                return False
            video_count = len(series.videos)
            for calendar in series.calendars:
                calendar.series_id = None
            session.delete(series)

        logger.info("series_deleted", series_id=str(series_id), videos_deleted=video_count)
        return True

    @staticmethod
    def _to_dict(series: SeriesModel) -> dict[str, Any]:
        return {
            "id": series.id,
            "owner_id": series.owner_id,
            "title": series.title,
            "description": series.description,
            "frequency": series.frequency,
            "created_at": ensure_utc(series.created_at),
        }
