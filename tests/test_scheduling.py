"""Tests for recurrence, scheduled posts and publishing calendars."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from reelflow.domain.enums import Frequency, JobState, JobType, ScheduledPostStatus, VideoStatus
from reelflow.domain.models import TimeSlot
from reelflow.errors import DataError, EntityNotFoundError, InvalidTransitionError
from reelflow.jobs.runner import drain
from reelflow.services.scheduling import (
    add_months,
    bulk_schedule_options,
    calculate_next_scheduled_time,
)
from reelflow.utils.time import utcnow

# 2026-10-21 is a Wednesday (day_of_week 3 with Sunday = 0)
WEDNESDAY_0900 = datetime(2026, 10, 21, 9, 0, tzinfo=UTC)
WEDNESDAY_1100 = datetime(2026, 10, 21, 11, 0, tzinfo=UTC)


class TestNextScheduledTime:
    """The recurrence algorithm."""

    def test_weekly_later_today(self) -> None:
        """A slot later on the same weekday fires today."""
        result = calculate_next_scheduled_time(
            [TimeSlot(day_of_week=3, hour=10, minute=0)], Frequency.WEEKLY, now=WEDNESDAY_0900
        )
        assert result == datetime(2026, 10, 21, 10, 0, tzinfo=UTC)

    def test_weekly_passed_today_moves_a_week(self) -> None:
        """A slot already passed today fires next week."""
        result = calculate_next_scheduled_time(
            [{"day_of_week": 3, "hour": 10, "minute": 0}], "weekly", now=WEDNESDAY_1100
        )
        assert result == datetime(2026, 10, 28, 10, 0, tzinfo=UTC)

    def test_weekly_other_day(self) -> None:
        """Sunday slots seen from a Wednesday fire in four days."""
        result = calculate_next_scheduled_time(
            [{"day_of_week": 0, "hour": 8, "minute": 30}], "weekly", now=WEDNESDAY_0900
        )
        assert result == datetime(2026, 10, 25, 8, 30, tzinfo=UTC)

    def test_earliest_slot_wins(self) -> None:
        """The result is the minimum across slots."""
        slots = [
            {"day_of_week": 1, "hour": 9, "minute": 0},
            {"day_of_week": 5, "hour": 9, "minute": 0},
        ]
        result = calculate_next_scheduled_time(slots, Frequency.WEEKLY, now=WEDNESDAY_0900)
        assert result == datetime(2026, 10, 23, 9, 0, tzinfo=UTC)

    def test_daily(self) -> None:
        """Daily slots fire today if still ahead, otherwise tomorrow."""
        ahead = calculate_next_scheduled_time(
            [{"hour": 18, "minute": 0}], Frequency.DAILY, now=WEDNESDAY_0900
        )
        passed = calculate_next_scheduled_time(
            [{"hour": 8, "minute": 0}], Frequency.DAILY, now=WEDNESDAY_0900
        )
        assert ahead == datetime(2026, 10, 21, 18, 0, tzinfo=UTC)
        assert passed == datetime(2026, 10, 22, 8, 0, tzinfo=UTC)

    def test_monthly_clamps_day(self) -> None:
        """Monthly slots past their time move to the same day next month, clamped."""
        result = calculate_next_scheduled_time(
            [{"hour": 10, "minute": 0}],
            Frequency.MONTHLY,
            now=datetime(2026, 1, 31, 12, 0, tzinfo=UTC),
        )
        assert result == datetime(2026, 2, 28, 10, 0, tzinfo=UTC)

    def test_slots_in_configured_timezone(self) -> None:
        """Slot hours are local to the configured zone; the result is UTC."""
        result = calculate_next_scheduled_time(
            [{"hour": 10, "minute": 0}],
            Frequency.DAILY,
            now=datetime(2026, 10, 21, 12, 0, tzinfo=UTC),
            timezone="America/New_York",
        )
        assert result == datetime(2026, 10, 21, 14, 0, tzinfo=UTC)
        assert result.tzinfo is not None

    def test_no_slots(self) -> None:
        assert calculate_next_scheduled_time([], Frequency.DAILY, now=WEDNESDAY_0900) is None


def test_add_months_leap_year() -> None:
    assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert add_months(datetime(2026, 11, 15), 2) == datetime(2027, 1, 15)


def test_bulk_schedule_options() -> None:
    """Videos are spread one period apart."""
    ids = [uuid4(), uuid4(), uuid4()]
    start = datetime(2026, 1, 31, 10, 0, tzinfo=UTC)

    daily = bulk_schedule_options(ids, ["youtube"], start, Frequency.DAILY)
    weekly = bulk_schedule_options(ids, ["youtube"], start, Frequency.WEEKLY)
    monthly = bulk_schedule_options(ids[:2], ["youtube"], start, Frequency.MONTHLY)

    assert [s["scheduled_at"].day for s in daily] == [31, 1, 2]
    assert weekly[2]["scheduled_at"] == start + timedelta(days=14)
    assert monthly[1]["scheduled_at"] == datetime(2026, 2, 28, 10, 0, tzinfo=UTC)
    assert [s["video_id"] for s in daily] == ids


class TestScheduledPosts:
    """One-shot scheduled posts."""

    def test_schedule_video_creates_post_and_delayed_job(self, context, completed_video) -> None:
        scheduling = context.scheduling
        when = utcnow() + timedelta(hours=2)

        post = scheduling.schedule_video(completed_video.id, ["YouTube"], when)

        assert post["status"] == ScheduledPostStatus.PENDING
        assert post["platforms"] == ["youtube"]
        job = context.queue.get(post["publish_job_id"])
        assert job.job_type == JobType.PUBLISH_VIDEO
        assert job.payload["scheduled_post_id"] == str(post["id"])
        assert job.available_at >= when - timedelta(seconds=5)

        video = context.videos.get(completed_video.id)
        assert video.status == VideoStatus.SCHEDULED
        assert video.scheduled_at is not None

    def test_schedule_video_is_idempotent(self, context, completed_video) -> None:
        when = utcnow() + timedelta(hours=2)

        first = context.scheduling.schedule_video(completed_video.id, ["youtube"], when)
        second = context.scheduling.schedule_video(completed_video.id, ["youtube"], when)

        assert second["id"] == first["id"]
        assert len(context.queue.list_jobs(job_type=JobType.PUBLISH_VIDEO)) == 1

    def test_schedule_requires_completed_video(self, context, videos) -> None:
        draft = videos.create("owner-1", "Not rendered yet")

        with pytest.raises(InvalidTransitionError):
            context.scheduling.schedule_video(draft.id, ["youtube"], utcnow())

    def test_post_needs_platforms(self, context, completed_video) -> None:
        with pytest.raises(DataError):
            context.scheduling.create_scheduled_post("owner-1", completed_video.id, [], utcnow())

    def test_cancel_removes_post_job_and_schedule(self, context, completed_video) -> None:
        post = context.scheduling.schedule_video(
            completed_video.id, ["youtube"], utcnow() + timedelta(hours=1)
        )

        assert context.scheduling.cancel_scheduled_post(post["id"]) is True

        assert context.scheduling.get_scheduled_post(post["id"]) is None
        assert context.queue.get(post["publish_job_id"]).state == JobState.CANCELLED
        video = context.videos.get(completed_video.id)
        assert video.status == VideoStatus.COMPLETED
        assert video.scheduled_at is None
        assert context.scheduling.cancel_scheduled_post(post["id"]) is False

    def test_update_time_moves_job_and_video(self, context, completed_video) -> None:
        post = context.scheduling.schedule_video(
            completed_video.id, ["youtube"], utcnow() + timedelta(hours=1)
        )
        new_time = utcnow() + timedelta(hours=3)

        updated = context.scheduling.update_scheduled_post(
            post["id"], scheduled_at=new_time, platforms=["instagram"]
        )

        assert updated["scheduled_at"] == new_time
        assert updated["platforms"] == ["instagram"]
        assert context.queue.get(post["publish_job_id"]).state == JobState.CANCELLED
        job = context.queue.get(updated["publish_job_id"])
        assert job.state == JobState.QUEUED
        assert job.available_at >= new_time - timedelta(seconds=5)
        assert context.videos.get(completed_video.id).scheduled_at == new_time

    def test_reschedule_moves_existing_post(self, context, completed_video) -> None:
        """Scheduling again at a new time keeps one post, one live job and one time."""
        first = context.scheduling.schedule_video(
            completed_video.id, ["youtube"], utcnow() + timedelta(hours=1)
        )
        later = utcnow() + timedelta(days=2)

        second = context.scheduling.schedule_video(completed_video.id, ["youtube"], later)

        assert second["id"] == first["id"]
        assert second["scheduled_at"] == later
        assert second["publish_job_id"] != first["publish_job_id"]
        assert context.queue.get(first["publish_job_id"]).state == JobState.CANCELLED
        queued = context.queue.list_jobs(state=JobState.QUEUED, job_type=JobType.PUBLISH_VIDEO)
        assert [j.id for j in queued] == [second["publish_job_id"]]

        video = context.videos.get(completed_video.id)
        assert video.status == VideoStatus.SCHEDULED
        assert video.scheduled_at == later
        assert context.scheduling.get_scheduled_post(first["id"])["scheduled_at"] == later

    def test_claim_is_at_most_once(self, context, completed_video) -> None:
        post = context.scheduling.create_scheduled_post(
            "owner-1", completed_video.id, ["youtube"], utcnow()
        )

        assert context.scheduling.claim_post(post["id"]) is True
        assert context.scheduling.claim_post(post["id"]) is False
        assert context.scheduling.update_scheduled_post(post["id"], platforms=["tiktok"]) is None

    def test_list_due_posts(self, context, completed_video) -> None:
        scheduling = context.scheduling
        past = scheduling.create_scheduled_post(
            "owner-1", completed_video.id, ["youtube"], utcnow() - timedelta(minutes=5)
        )
        scheduling.create_scheduled_post(
            "owner-1", completed_video.id, ["youtube"], utcnow() + timedelta(hours=5)
        )

        due = scheduling.list_due_posts()

        assert [p["id"] for p in due] == [past["id"]]

    @pytest.mark.asyncio
    async def test_due_scan_and_delayed_job_publish_once(self, context, completed_video) -> None:
        """The scan and the publish job race for the post; only one publishes."""
        post = context.scheduling.schedule_video(
            completed_video.id, ["youtube", "instagram"], utcnow() - timedelta(seconds=1)
        )

        counts = await context.scheduling.process_due_posts(context.orchestrator)
        assert counts == {"due": 1, "published": 1, "failed": 0, "skipped": 0}

        # The delayed publish job finds the post already claimed
        assert await drain(context.queue, context) == 1
        assert context.queue.get(post["publish_job_id"]).state == JobState.COMPLETED

        published = context.scheduling.get_scheduled_post(post["id"])
        assert published["status"] == ScheduledPostStatus.PUBLISHED
        assert set(published["published_urls"]) == {"youtube", "instagram"}

        video = context.videos.get(completed_video.id)
        assert video.status == VideoStatus.PUBLISHED
        assert video.published_at is not None

    @pytest.mark.asyncio
    async def test_publish_post_lost_claim(self, context, completed_video) -> None:
        post = context.scheduling.create_scheduled_post(
            "owner-1", completed_video.id, ["youtube"], utcnow()
        )
        context.scheduling.claim_post(post["id"])

        assert await context.scheduling.publish_post(post["id"], context.orchestrator) is None

    @pytest.mark.asyncio
    async def test_publish_post_failure_marks_post_failed(self, context, videos) -> None:
        """A post whose video cannot be published is failed, not left processing."""
        draft = videos.create("owner-1", "Never rendered")
        post = context.scheduling.create_scheduled_post("owner-1", draft.id, ["youtube"], utcnow())

        counts = await context.scheduling.process_due_posts(context.orchestrator)

        assert counts["failed"] == 1
        failed = context.scheduling.get_scheduled_post(post["id"])
        assert failed["status"] == ScheduledPostStatus.FAILED
        assert "draft" in failed["error"]

    def test_schedule_bulk_posts_and_analytics(
        self, context, completed_video, make_completed_video
    ) -> None:
        scheduling = context.scheduling
        second_video = make_completed_video("How bees dance")
        options = bulk_schedule_options(
            [completed_video.id, second_video.id],
            ["youtube", "instagram"],
            utcnow() + timedelta(days=1),
            Frequency.WEEKLY,
        )
        posts = scheduling.schedule_bulk_posts("owner-1", options)
        other = make_completed_video("Someone else's video", owner_id="owner-2")
        scheduling.schedule_video(other.id, ["tiktok"], utcnow() + timedelta(hours=1))

        analytics = scheduling.get_scheduling_analytics("owner-1")

        assert len(posts) == 2
        assert all(p["publish_job_id"] for p in posts)
        assert context.videos.get(second_video.id).status == VideoStatus.SCHEDULED
        assert analytics == {
            "total_scheduled": 2,
            "total_published": 0,
            "total_failed": 0,
            "platform_breakdown": {"youtube": 2, "instagram": 2},
            "upcoming_posts": 2,
        }

    def test_bulk_rejects_unrendered_video(self, context, videos) -> None:
        draft = videos.create("owner-1", "Not rendered yet")
        options = bulk_schedule_options(
            [draft.id], ["youtube"], utcnow() + timedelta(days=1), Frequency.DAILY
        )

        with pytest.raises(InvalidTransitionError):
            context.scheduling.schedule_bulk_posts("owner-1", options)

        assert context.scheduling.list_scheduled_posts(owner_id="owner-1") == []
        assert context.videos.get(draft.id).status == VideoStatus.DRAFT


class TestPublishingCalendars:
    """Recurring calendars that trigger content generation."""

    SLOTS = [{"day_of_week": 3, "hour": 10, "minute": 0}]

    def test_create_computes_next_time(self, context) -> None:
        calendar = context.scheduling.create_calendar(
            "owner-1", Frequency.WEEKLY, self.SLOTS, ["youtube"], now=WEDNESDAY_0900
        )

        assert calendar["next_scheduled_at"] == datetime(2026, 10, 21, 10, 0, tzinfo=UTC)
        assert calendar["is_active"] is True

    def test_invalid_slot_rejected(self, context) -> None:
        with pytest.raises(DataError):
            context.scheduling.create_calendar(
                "owner-1", Frequency.DAILY, [{"hour": 25}], ["youtube"]
            )

    def test_trigger_enqueues_generation_and_advances(self, context) -> None:
        scheduling = context.scheduling
        calendar = scheduling.create_calendar(
            "owner-1",
            Frequency.WEEKLY,
            self.SLOTS,
            ["youtube"],
            category="science",
            now=WEDNESDAY_0900,
        )
        now = datetime(2026, 10, 21, 10, 30, tzinfo=UTC)

        assert [c["id"] for c in scheduling.list_due_calendars(now)] == [calendar["id"]]
        counts = scheduling.process_due_calendars(now)

        assert counts == {"due": 1, "triggered": 1, "failed": 0, "skipped": 0}
        updated = scheduling.get_calendar(calendar["id"])
        assert updated["next_scheduled_at"] == datetime(2026, 10, 28, 10, 0, tzinfo=UTC)
        assert updated["last_triggered_at"] == now
        assert scheduling.list_due_calendars(now) == []

        [job] = context.queue.list_jobs(job_type=JobType.GENERATE_CONTENT)
        assert job.payload == {
            "owner_id": "owner-1",
            "category": "science",
            "publish_platforms": ["youtube"],
        }

    def test_series_calendar_generates_next_in_series(self, context, series_store) -> None:
        series = series_store.create("owner-1", "Ocean mysteries")
        calendar = context.scheduling.create_calendar(
            "owner-1",
            Frequency.WEEKLY,
            self.SLOTS,
            ["instagram"],
            series_id=series["id"],
            now=WEDNESDAY_0900,
        )

        job_id = context.scheduling.trigger_calendar(
            calendar["id"], datetime(2026, 10, 21, 10, 5, tzinfo=UTC)
        )

        job = context.queue.get(job_id)
        assert job.payload == {
            "series_id": str(series["id"]),
            "owner_id": "owner-1",
            "category": "Ocean mysteries",
            "publish_platforms": ["instagram"],
        }

    def test_inactive_calendar_is_not_due(self, context) -> None:
        scheduling = context.scheduling
        calendar = scheduling.create_calendar(
            "owner-1", Frequency.DAILY, [{"hour": 10}], ["youtube"], now=WEDNESDAY_0900
        )

        scheduling.update_calendar(calendar["id"], now=WEDNESDAY_0900, is_active=False)

        assert scheduling.list_due_calendars(datetime(2026, 10, 21, 11, 0, tzinfo=UTC)) == []

    def test_update_recomputes_next_time(self, context) -> None:
        scheduling = context.scheduling
        calendar = scheduling.create_calendar(
            "owner-1", Frequency.WEEKLY, self.SLOTS, ["youtube"], now=WEDNESDAY_0900
        )

        updated = scheduling.update_calendar(
            calendar["id"], now=WEDNESDAY_0900, frequency=Frequency.DAILY, time_slots=[{"hour": 8}]
        )

        assert updated["next_scheduled_at"] == datetime(2026, 10, 22, 8, 0, tzinfo=UTC)
        with pytest.raises(DataError):
            scheduling.update_calendar(calendar["id"], colour="blue")
        assert scheduling.update_calendar(uuid4(), is_active=False) is None

    def test_delete_calendar(self, context) -> None:
        calendar = context.scheduling.create_calendar(
            "owner-1", Frequency.DAILY, [{"hour": 10}], ["youtube"]
        )

        assert context.scheduling.delete_calendar(calendar["id"]) is True
        assert context.scheduling.get_calendar(calendar["id"]) is None
        assert context.scheduling.delete_calendar(calendar["id"]) is False

    def test_generate_next_for_missing_series(self, context) -> None:
        with pytest.raises(EntityNotFoundError):
            context.scheduling.trigger_generate_next(uuid4())
