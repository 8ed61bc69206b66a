"""Scheduled posts and recurring publishing calendars.

Both are persisted. Work is claimed with conditional updates so that the
in-process scheduler loop and Celery beat can run the same scans without
publishing a post or triggering a calendar slot twice.
"""

import asyncio
import calendar as calendar_module
from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from reelflow.config import Settings, get_settings
from reelflow.db.models import PublishingCalendarModel, ScheduledPostModel, SeriesModel, VideoModel
from reelflow.db.session import session_scope
from reelflow.domain.enums import Frequency, JobType, ScheduledPostStatus, VideoStatus
from reelflow.domain.models import PublishOutcome, TimeSlot, normalize_platforms
from reelflow.errors import DataError, EntityNotFoundError
from reelflow.logging import get_logger
from reelflow.services.job_queue import JobQueue
from reelflow.services.publish_orchestrator import PublishOrchestrator, publish_video_entity
from reelflow.services.videos import VideoStore
from reelflow.utils.time import ensure_utc, utcnow

logger = get_logger(__name__)


# =============================================================================
# Recurrence
# =============================================================================


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar_module.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _next_for_slot(slot: TimeSlot, frequency: Frequency, now: datetime) -> datetime:
    candidate = now.replace(hour=slot.hour, minute=slot.minute, second=0, microsecond=0)

    if frequency == Frequency.DAILY:
        if candidate <= now:
            candidate += timedelta(days=1)
    elif frequency == Frequency.WEEKLY:
        # Python weekdays start at Monday = 0; slots use Sunday = 0
        today = (now.weekday() + 1) % 7
        days_until = (slot.day_of_week - today + 7) % 7
        if days_until == 0 and candidate <= now:
            candidate += timedelta(days=7)
        else:
            candidate += timedelta(days=days_until)
    elif frequency == Frequency.MONTHLY:
        if candidate <= now:
            candidate = add_months(candidate, 1)

    return candidate


def calculate_next_scheduled_time(
    time_slots: Iterable[TimeSlot | dict[str, Any]],
    frequency: Frequency | str,
    now: datetime | None = None,
    timezone: str = "UTC",
) -> datetime | None:
    """Earliest upcoming slot time for a calendar.

    For each slot the candidate is today at the slot's hour and minute, then:

    - daily: tomorrow if that time has passed
    - weekly: the next occurrence of the slot's weekday, a full week ahead
      if it is today and the time has passed
    - monthly: the same day next month if the time has passed

    Args:
        time_slots: Slots as TimeSlot or ``{day_of_week, hour, minute}`` dicts
        frequency: daily, weekly or monthly
        now: Reference time (defaults to the current time)
        timezone: Zone in which slot hours are interpreted

    Returns:
        The earliest candidate in UTC, or None when there are no slots
    """
    frequency = Frequency(frequency)
    slots = [s if isinstance(s, TimeSlot) else TimeSlot.from_dict(s) for s in time_slots]
    if not slots:
        return None

    local_now = ensure_utc(now or utcnow()).astimezone(ZoneInfo(timezone))
    candidates = [_next_for_slot(slot, frequency, local_now) for slot in slots]
    return ensure_utc(min(candidates))


def bulk_schedule_options(
    video_ids: list[UUID],
    platforms: list[str],
    start: datetime,
    frequency: Frequency | str,
) -> list[dict[str, Any]]:
    """Spread videos over time starting at ``start``: one per day, week or month."""
    frequency = Frequency(frequency)
    current = ensure_utc(start)
    schedules = []
    for video_id in video_ids:
        schedules.append(
            {"video_id": video_id, "scheduled_at": current, "platforms": list(platforms)}
        )
        if frequency == Frequency.DAILY:
            current = current + timedelta(days=1)
        elif frequency == Frequency.WEEKLY:
            current = current + timedelta(days=7)
        else:
            current = add_months(current, 1)
    return schedules


# =============================================================================
# Serialization
# =============================================================================


def _post_to_dict(post: ScheduledPostModel) -> dict[str, Any]:
    return {
        "id": post.id,
        "owner_id": post.owner_id,
        "video_id": post.video_id,
        "platforms": list(post.platforms or []),
        "scheduled_at": ensure_utc(post.scheduled_at),
        "status": post.status,
        "published_urls": dict(post.published_urls or {}),
        "error": post.error,
        "publish_job_id": post.publish_job_id,
        "created_at": ensure_utc(post.created_at),
        "updated_at": ensure_utc(post.updated_at),
    }


def _calendar_to_dict(cal: PublishingCalendarModel) -> dict[str, Any]:
    return {
        "id": cal.id,
        "owner_id": cal.owner_id,
        "series_id": cal.series_id,
        "frequency": cal.frequency,
        "time_slots": list(cal.time_slots or []),
        "platforms": list(cal.platforms or []),
        "category": cal.category,
        "is_active": cal.is_active,
        "next_scheduled_at": ensure_utc(cal.next_scheduled_at),
        "last_triggered_at": ensure_utc(cal.last_triggered_at),
    }


def _validate_platforms(platforms: list[str]) -> list[str]:
    normalized = normalize_platforms(platforms)
    if not normalized:
        raise DataError("At least one platform is required")
    return normalized


def _validate_slots(time_slots: list[TimeSlot | dict[str, Any]]) -> list[dict[str, int]]:
    try:
        return [
            (s if isinstance(s, TimeSlot) else TimeSlot.from_dict(s)).to_dict() for s in time_slots
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise DataError(f"Invalid time slot: {e}") from e


# =============================================================================
# Service
# =============================================================================


class SchedulingService:
    """Scheduled post and publishing calendar operations."""

    def __init__(
        self,
        queue: JobQueue,
        videos: VideoStore,
        session_factory: sessionmaker[Session] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.queue = queue
        self.videos = videos
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Scheduled posts
    # -------------------------------------------------------------------------

    def create_scheduled_post(
        self,
        owner_id: str,
        video_id: UUID,
        platforms: list[str],
        scheduled_at: datetime,
        publish_job_id: UUID | None = None,
    ) -> dict[str, Any]:
        """Schedule a one-shot publish of a video."""
        platforms = _validate_platforms(platforms)
        with session_scope(self.session_factory) as session:
            if session.get(VideoModel, video_id) is None:
                raise EntityNotFoundError("Video", video_id)
            post = ScheduledPostModel(
                owner_id=owner_id,
                video_id=video_id,
                platforms=platforms,
                scheduled_at=ensure_utc(scheduled_at),
                status=ScheduledPostStatus.PENDING.value,
                published_urls={},
                publish_job_id=publish_job_id,
            )
            session.add(post)
            session.flush()
            created = _post_to_dict(post)

        logger.info(
            "post_scheduled",
            post_id=str(created["id"]),
            video_id=str(video_id),
            scheduled_at=created["scheduled_at"].isoformat(),
            platforms=platforms,
        )
        return created

    def _pending_post_for(self, video_id: UUID) -> dict[str, Any] | None:
        with session_scope(self.session_factory) as session:
            post = session.scalars(
                select(ScheduledPostModel)
                .where(
                    ScheduledPostModel.video_id == video_id,
                    ScheduledPostModel.status == ScheduledPostStatus.PENDING.value,
                )
                .order_by(ScheduledPostModel.scheduled_at.asc())
            ).first()
            return _post_to_dict(post) if post else None

    def _enqueue_publish(
        self,
        video_id: UUID,
        platforms: list[str],
        post_id: UUID,
        scheduled_at: datetime,
        now: datetime | None = None,
    ) -> UUID:
        delay = (scheduled_at - (now or utcnow())).total_seconds()
        return self.queue.enqueue(
            JobType.PUBLISH_VIDEO,
            {
                "video_id": str(video_id),
                "platforms": platforms,
                "scheduled_post_id": str(post_id),
            },
            delay=max(delay, 0),
        )

    def schedule_video(
        self,
        video_id: UUID,
        platforms: list[str],
        scheduled_at: datetime,
        now: datetime | None = None,
        owner_id: str | None = None,
    ) -> dict[str, Any]:
        """Mark a completed video scheduled and queue its delayed publish.

        Creates a scheduled post and a ``publish-video`` job that becomes
        visible at ``scheduled_at``. Whichever of that job and the due-post
        scan claims the post first publishes it.

        A video has at most one pending post. Scheduling it again with the
        same time and platforms returns that post; anything else moves it
        through ``update_scheduled_post``.

        Raises:
            EntityNotFoundError: The video does not exist
            InvalidTransitionError: The video is not completed
            DataError: The pending post was claimed while being moved
        """
        scheduled_at = ensure_utc(scheduled_at)
        platforms = _validate_platforms(platforms)

        existing = self._pending_post_for(video_id)
        if existing is not None:
            if existing["scheduled_at"] == scheduled_at and existing["platforms"] == platforms:
                return existing
            moved = self.update_scheduled_post(existing["id"], scheduled_at, platforms, now=now)
            if moved is None:
                raise DataError(f"Scheduled post {existing['id']} is already being published")
            return moved

        video = self.videos.transition(
            video_id, VideoStatus.SCHEDULED, allow_same=True, scheduled_at=scheduled_at
        )
        post = self.create_scheduled_post(
            owner_id or video.owner_id, video_id, platforms, scheduled_at
        )
        job_id = self._enqueue_publish(video_id, platforms, post["id"], scheduled_at, now)
        with session_scope(self.session_factory) as session:
            model = session.get(ScheduledPostModel, post["id"])
            model.publish_job_id = job_id
            session.flush()
            return _post_to_dict(model)

    def get_scheduled_post(self, post_id: UUID) -> dict[str, Any] | None:
        with session_scope(self.session_factory) as session:
            post = session.get(ScheduledPostModel, post_id)
            return _post_to_dict(post) if post else None

    def update_scheduled_post(
        self,
        post_id: UUID,
        scheduled_at: datetime | None = None,
        platforms: list[str] | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any] | None:
        """Change time or platforms of a pending post. Returns None if it is not pending.

        A new time is written to the post and its scheduled video together.
        A post with a delayed publish job gets a fresh job at the new time and
        the old one is cancelled.
        """
        if platforms is not None:
            platforms = _validate_platforms(platforms)
        if scheduled_at is not None:
            scheduled_at = ensure_utc(scheduled_at)

        current = self.get_scheduled_post(post_id)
        if current is None or current["status"] != ScheduledPostStatus.PENDING:
            return None
        moved = scheduled_at is not None and scheduled_at != current["scheduled_at"]
        old_job_id = current["publish_job_id"]

        new_job_id = None
        if moved and old_job_id:
            new_job_id = self._enqueue_publish(
                current["video_id"], platforms or current["platforms"], post_id, scheduled_at, now
            )

        with session_scope(self.session_factory) as session:
            post = session.get(ScheduledPostModel, post_id)
            if post is None or post.status != ScheduledPostStatus.PENDING.value:
                updated = None
            else:
                if platforms is not None:
                    post.platforms = platforms
                if moved:
                    post.scheduled_at = scheduled_at
                    video = session.get(VideoModel, post.video_id)
                    if video is not None and video.status == VideoStatus.SCHEDULED.value:
                        video.scheduled_at = scheduled_at
                if new_job_id is not None:
                    post.publish_job_id = new_job_id
                session.flush()
                updated = _post_to_dict(post)

        if updated is None:
            # Claimed between the read and the write
            if new_job_id is not None:
                self.queue.cancel(new_job_id)
            return None
        if new_job_id is not None:
            self.queue.cancel(old_job_id)

        logger.info(
            "post_updated",
            post_id=str(post_id),
            scheduled_at=updated["scheduled_at"].isoformat(),
            platforms=updated["platforms"],
        )
        return updated

    def cancel_scheduled_post(self, post_id: UUID) -> bool:
        """Delete a pending post, its queued publish job, and unschedule the video."""
        with session_scope(self.session_factory) as session:
            post = session.get(ScheduledPostModel, post_id)
            if post is None or post.status != ScheduledPostStatus.PENDING.value:
                return False
            video_id = post.video_id
            publish_job_id = post.publish_job_id
            session.delete(post)

            video = session.get(VideoModel, video_id)
            others = session.scalars(
                select(ScheduledPostModel.id).where(
                    ScheduledPostModel.video_id == video_id,
                    ScheduledPostModel.id != post_id,
                    ScheduledPostModel.status == ScheduledPostStatus.PENDING.value,
                )
            ).first()
            if video is not None and video.status == VideoStatus.SCHEDULED.value and not others:
                video.status = VideoStatus.COMPLETED.value
                video.scheduled_at = None

        if publish_job_id:
            self.queue.cancel(publish_job_id)

        logger.info("post_cancelled", post_id=str(post_id), video_id=str(video_id))
        return True

    def list_scheduled_posts(
        self,
        owner_id: str | None = None,
        status: ScheduledPostStatus | str | None = None,
    ) -> list[dict[str, Any]]:
        query = select(ScheduledPostModel).order_by(ScheduledPostModel.scheduled_at.asc())
        if owner_id:
            query = query.where(ScheduledPostModel.owner_id == owner_id)
        if status:
            query = query.where(ScheduledPostModel.status == ScheduledPostStatus(status).value)
        with session_scope(self.session_factory) as session:
            return [_post_to_dict(p) for p in session.scalars(query)]

    def list_due_posts(self, now: datetime | None = None, limit: int = 100) -> list[dict[str, Any]]:
        """Pending posts whose time has come, oldest first."""
        now = now or utcnow()
        query = (
            select(ScheduledPostModel)
            .where(
                ScheduledPostModel.status == ScheduledPostStatus.PENDING.value,
                ScheduledPostModel.scheduled_at <= now,
            )
            .order_by(ScheduledPostModel.scheduled_at.asc())
            .limit(limit)
        )
        with session_scope(self.session_factory) as session:
            return [_post_to_dict(p) for p in session.scalars(query)]

    def claim_post(self, post_id: UUID) -> bool:
        """Atomically move a post from pending to processing. Only one caller wins."""
        with session_scope(self.session_factory) as session:
            result = session.execute(
                update(ScheduledPostModel)
                .where(
                    ScheduledPostModel.id == post_id,
                    ScheduledPostModel.status == ScheduledPostStatus.PENDING.value,
                )
                .values(status=ScheduledPostStatus.PROCESSING.value, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def finish_post(
        self,
        post_id: UUID,
        outcome: PublishOutcome | None = None,
        error: str | None = None,
    ) -> None:
        """Record the result of a claimed post."""
        with session_scope(self.session_factory) as session:
            post = session.get(ScheduledPostModel, post_id)
            if post is None:
                return
            if outcome is not None and outcome.any_success:
                post.status = ScheduledPostStatus.PUBLISHED.value
                post.published_urls = outcome.links
                post.error = "; ".join(f"{p}: {e}" for p, e in outcome.errors.items()) or None
            else:
                post.status = ScheduledPostStatus.FAILED.value
                if outcome is not None:
                    post.published_urls = outcome.links
                    error = error or "; ".join(f"{p}: {e}" for p, e in outcome.errors.items())
                post.error = error or "Publish failed"

    async def publish_post(
        self,
        post_id: UUID,
        orchestrator: PublishOrchestrator,
    ) -> PublishOutcome | None:
        """Claim a due post and publish its video.

        Returns:
            The outcome, or None when another scanner already claimed the post
        """
        if not await asyncio.to_thread(self.claim_post, post_id):
            logger.info("post_claim_lost", post_id=str(post_id))
            return None

        post = await asyncio.to_thread(self.get_scheduled_post, post_id)
        if post is None:
            return None

        logger.info("post_publish_started", post_id=str(post_id), video_id=str(post["video_id"]))
        try:
            outcome = await publish_video_entity(
                self.videos, orchestrator, post["video_id"], post["platforms"]
            )
        except Exception as e:
            logger.error("post_publish_failed", post_id=str(post_id), error=str(e))
            await asyncio.to_thread(self.finish_post, post_id, None, str(e))
            raise

        await asyncio.to_thread(self.finish_post, post_id, outcome)
        logger.info(
            "post_publish_completed",
            post_id=str(post_id),
            success=outcome.any_success,
            links=outcome.links,
        )
        return outcome

    async def process_due_posts(
        self,
        orchestrator: PublishOrchestrator,
        now: datetime | None = None,
    ) -> dict[str, int]:
        """Publish every due post. One post's failure does not stop the scan."""
        due = await asyncio.to_thread(self.list_due_posts, now)
        counts = {"due": len(due), "published": 0, "failed": 0, "skipped": 0}

        for post in due:
            try:
                outcome = await self.publish_post(post["id"], orchestrator)
            except Exception:
                counts["failed"] += 1
                continue
            if outcome is None:
                counts["skipped"] += 1
            elif outcome.any_success:
                counts["published"] += 1
            else:
                counts["failed"] += 1

        if due:
            logger.info("due_posts_processed", **counts)
        return counts

    # -------------------------------------------------------------------------
    # Publishing calendars
    # -------------------------------------------------------------------------

    def _next_time(self, cal: PublishingCalendarModel, now: datetime | None) -> datetime | None:
        return calculate_next_scheduled_time(
            cal.time_slots or [],
            cal.frequency,
            now=now,
            timezone=self.settings.scheduler_timezone,
        )

    def create_calendar(
        self,
        owner_id: str,
        frequency: Frequency | str,
        time_slots: list[TimeSlot | dict[str, Any]],
        platforms: list[str],
        series_id: UUID | None = None,
        category: str | None = None,
        is_active: bool = True,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Create a calendar and compute its first trigger time."""
        with session_scope(self.session_factory) as session:
            if series_id is not None and session.get(SeriesModel, series_id) is None:
                raise EntityNotFoundError("Series", series_id)
            cal = PublishingCalendarModel(
                owner_id=owner_id,
                series_id=series_id,
                frequency=Frequency(frequency).value,
                time_slots=_validate_slots(time_slots),
                platforms=_validate_platforms(platforms),
                category=category,
                is_active=is_active,
            )
            cal.next_scheduled_at = self._next_time(cal, now)
            session.add(cal)
            session.flush()
            created = _calendar_to_dict(cal)

        logger.info(
            "calendar_created",
            calendar_id=str(created["id"]),
            next_scheduled_at=str(created["next_scheduled_at"]),
        )
        return created

    def update_calendar(
        self,
        calendar_id: UUID,
        now: datetime | None = None,
        **changes: Any,
    ) -> dict[str, Any] | None:
        """Edit a calendar; next_scheduled_at is always recomputed."""
        allowed = {"frequency", "time_slots", "platforms", "series_id", "category", "is_active"}
        unknown = set(changes) - allowed
        if unknown:
            raise DataError(f"Unknown calendar fields: {sorted(unknown)}")

        with session_scope(self.session_factory) as session:
            cal = session.get(PublishingCalendarModel, calendar_id)
            if cal is None:
                return None
            if "frequency" in changes:
                cal.frequency = Frequency(changes["frequency"]).value
            if "time_slots" in changes:
                cal.time_slots = _validate_slots(changes["time_slots"])
            if "platforms" in changes:
                cal.platforms = _validate_platforms(changes["platforms"])
            if "series_id" in changes:
                cal.series_id = changes["series_id"]
            if "category" in changes:
                cal.category = changes["category"]
            if "is_active" in changes:
                cal.is_active = bool(changes["is_active"])
            cal.next_scheduled_at = self._next_time(cal, now)
            session.flush()
            updated = _calendar_to_dict(cal)

        logger.info("calendar_updated", calendar_id=str(calendar_id), fields=sorted(changes))
        return updated

    def delete_calendar(self, calendar_id: UUID) -> bool:
        with session_scope(self.session_factory) as session:
            cal = session.get(PublishingCalendarModel, calendar_id)
            if cal is None:
                return False
            session.delete(cal)
        logger.info("calendar_deleted", calendar_id=str(calendar_id))
        return True

    def get_calendar(self, calendar_id: UUID) -> dict[str, Any] | None:
        with session_scope(self.session_factory) as session:
            cal = session.get(PublishingCalendarModel, calendar_id)
            return _calendar_to_dict(cal) if cal else None

    def list_calendars(self, owner_id: str | None = None) -> list[dict[str, Any]]:
        query = select(PublishingCalendarModel).order_by(PublishingCalendarModel.created_at.asc())
        if owner_id:
            query = query.where(PublishingCalendarModel.owner_id == owner_id)
        with session_scope(self.session_factory) as session:
            return [_calendar_to_dict(c) for c in session.scalars(query)]

    def list_due_calendars(self, now: datetime | None = None) -> list[dict[str, Any]]:
        now = now or utcnow()
        query = select(PublishingCalendarModel).where(
            PublishingCalendarModel.is_active.is_(True),
            PublishingCalendarModel.next_scheduled_at.is_not(None),
            PublishingCalendarModel.next_scheduled_at <= now,
        )
        with session_scope(self.session_factory) as session:
            return [_calendar_to_dict(c) for c in session.scalars(query)]

    def trigger_calendar(self, calendar_id: UUID, now: datetime | None = None) -> UUID | None:
        """Fire a due calendar: enqueue generation and advance next_scheduled_at.

        The advance is conditional on next_scheduled_at still holding the value
        that made the calendar due, so concurrent scanners trigger it once.

        Returns:
            The generation job id, or None if another scanner got there first
        """
        now = now or utcnow()
        with session_scope(self.session_factory) as session:
            cal = session.get(PublishingCalendarModel, calendar_id)
            if cal is None:
                raise EntityNotFoundError("PublishingCalendar", calendar_id)
            previous = cal.next_scheduled_at
            next_time = self._next_time(cal, now)
            result = session.execute(
                update(PublishingCalendarModel)
                .where(
                    PublishingCalendarModel.id == calendar_id,
                    PublishingCalendarModel.next_scheduled_at == previous,
                )
                .values(next_scheduled_at=next_time, last_triggered_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None
            owner_id = cal.owner_id
            series_id = cal.series_id
            category = cal.category
            platforms = list(cal.platforms or [])

        if series_id is not None:
            job_id = self.trigger_generate_next(series_id, platforms)
        else:
            job_id = self.queue.enqueue(
                JobType.GENERATE_CONTENT,
                {"owner_id": owner_id, "category": category, "publish_platforms": platforms},
            )

        logger.info(
            "calendar_triggered",
            calendar_id=str(calendar_id),
            job_id=str(job_id),
            next_scheduled_at=str(next_time),
        )
        return job_id

    def process_due_calendars(self, now: datetime | None = None) -> dict[str, int]:
        """Trigger every due calendar. One calendar's failure does not stop the scan."""
        due = self.list_due_calendars(now)
        counts = {"due": len(due), "triggered": 0, "failed": 0, "skipped": 0}

        for cal in due:
            try:
                job_id = self.trigger_calendar(cal["id"], now)
            except Exception as e:
                logger.error("calendar_trigger_failed", calendar_id=str(cal["id"]), error=str(e))
                counts["failed"] += 1
                continue
            if job_id is None:
                counts["skipped"] += 1
            else:
                counts["triggered"] += 1

        if due:
            logger.info("due_calendars_processed", **counts)
        return counts

    def trigger_generate_next(self, series_id: UUID, platforms: list[str] | None = None) -> UUID:
        """Enqueue generation of the next video in a series.

        The generate-content processor discovers a topic and creates the draft.
        """
        with session_scope(self.session_factory) as session:
            series = session.get(SeriesModel, series_id)
            if series is None:
                raise EntityNotFoundError("Series", series_id)
            payload: dict[str, Any] = {
                "series_id": str(series.id),
                "owner_id": series.owner_id,
                "category": series.title,
            }
        if platforms:
            payload["publish_platforms"] = normalize_platforms(platforms)

        job_id = self.queue.enqueue(JobType.GENERATE_CONTENT, payload)
        logger.info("series_generation_requested", series_id=str(series_id), job_id=str(job_id))
        return job_id

    # -------------------------------------------------------------------------
    # Bulk scheduling and analytics
    # -------------------------------------------------------------------------

    def schedule_bulk_posts(
        self,
        owner_id: str,
        schedules: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Schedule each ``{video_id, scheduled_at, platforms}`` entry through ``schedule_video``.

        Every video must be completed or already scheduled. Entries are applied
        in order and the first one that fails stops the batch.
        """
        return [
            self.schedule_video(
                UUID(str(s["video_id"])),
                s["platforms"],
                s["scheduled_at"],
                owner_id=owner_id,
            )
            for s in schedules
        ]

    def get_scheduling_analytics(
        self,
        owner_id: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Totals per status, posts per platform and upcoming pending posts."""
        now = now or utcnow()
        posts = self.list_scheduled_posts(owner_id=owner_id)

        platform_breakdown: Counter[str] = Counter()
        for post in posts:
            platform_breakdown.update(post["platforms"])

        return {
            "total_scheduled": len(posts),
            "total_published": sum(
                1 for p in posts if p["status"] == ScheduledPostStatus.PUBLISHED
            ),
            "total_failed": sum(1 for p in posts if p["status"] == ScheduledPostStatus.FAILED),
            "platform_breakdown": dict(platform_breakdown),
            "upcoming_posts": sum(
                1
                for p in posts
                if p["status"] == ScheduledPostStatus.PENDING and p["scheduled_at"] > now
            ),
        }
