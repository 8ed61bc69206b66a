"""Tests for the durable job queue."""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from reelflow.domain.enums import JobState, JobType
from reelflow.services.job_queue import compute_backoff
from reelflow.utils.time import utcnow


class TestDequeueOrder:
    """Eligibility and ordering of claims."""

    def test_higher_priority_first_then_fifo(self, queue) -> None:
        """Higher priority wins; equal priority is first in, first out."""
        low = queue.enqueue(JobType.RENDER_VIDEO, {"n": 1}, priority=0)
        high_a = queue.enqueue(JobType.RENDER_VIDEO, {"n": 2}, priority=5)
        high_b = queue.enqueue(JobType.RENDER_VIDEO, {"n": 3}, priority=5)

        claimed = [queue.dequeue_next("w1").id for _ in range(3)]

        assert claimed == [high_a, high_b, low]
        assert queue.dequeue_next("w1") is None

    def test_delayed_job_invisible_until_available(self, queue) -> None:
        """A delayed job is not handed out before its available time."""
        job_id = queue.enqueue(JobType.PUBLISH_VIDEO, {}, delay=60)

        assert queue.dequeue_next("w1") is None

        job = queue.dequeue_next("w1", now=utcnow() + timedelta(seconds=61))
        assert job is not None
        assert job.id == job_id
        assert job.state == JobState.RUNNING
        assert job.worker_id == "w1"

    def test_cancelled_job_is_never_claimed(self, queue) -> None:
        """Cancelled jobs leave the queue."""
        job_id = queue.enqueue(JobType.RENDER_VIDEO, {})

        assert queue.cancel(job_id) is True
        assert queue.dequeue_next("w1") is None
        assert queue.get(job_id).state == JobState.CANCELLED

    def test_running_job_cannot_be_cancelled(self, queue) -> None:
        """Only queued jobs can be cancelled."""
        job_id = queue.enqueue(JobType.RENDER_VIDEO, {})
        queue.dequeue_next("w1")

        assert queue.cancel(job_id) is False
        assert queue.get(job_id).state == JobState.RUNNING

    def test_concurrent_claims_are_exclusive(self, queue) -> None:
        """Workers racing for jobs never receive the same job."""
        expected = {queue.enqueue(JobType.RENDER_VIDEO, {"n": i}) for i in range(20)}

        def claim_all(worker_id: str) -> list:
            claimed = []
            while (job := queue.dequeue_next(worker_id)) is not None:
                claimed.append(job.id)
            return claimed

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(claim_all, [f"w{i}" for i in range(4)]))

        claimed = [job_id for batch in results for job_id in batch]
        assert len(claimed) == len(set(claimed))
        assert set(claimed) == expected


class TestRetries:
    """Failure, backoff and dead-lettering."""

    def test_compute_backoff(self) -> None:
        """Backoff doubles per attempt and is capped."""
        assert compute_backoff(1, 5, 600) == 10
        assert compute_backoff(2, 5, 600) == 20
        assert compute_backoff(10, 5, 600) == 600

    def test_retryable_failure_requeues_with_backoff(self, queue) -> None:
        """A retryable failure re-queues the job after a delay."""
        job_id = queue.enqueue(JobType.RENDER_VIDEO, {})
        queue.dequeue_next("w1")

        before = utcnow()
        failed = queue.fail(job_id, "renderer unavailable")

        assert failed.state == JobState.QUEUED
        assert failed.attempts == 1
        assert failed.last_error == "renderer unavailable"
        assert failed.worker_id is None
        assert failed.available_at >= before + timedelta(seconds=9)
        assert queue.dequeue_next("w1") is None

    def test_dead_letter_after_max_attempts(self, queue) -> None:
        """Exhausting attempts dead-letters the job for good."""
        job_id = queue.enqueue(JobType.RENDER_VIDEO, {}, max_attempts=2)
        later = utcnow() + timedelta(hours=1)

        queue.dequeue_next("w1")
        queue.fail(job_id, "first")
        queue.dequeue_next("w1", now=later)
        dead = queue.fail(job_id, "second")

        assert dead.is_dead
        assert dead.attempts == 2
        assert dead.attempts <= dead.max_attempts
        assert dead.finished_at is not None
        assert queue.dequeue_next("w1", now=later + timedelta(days=1)) is None

    def test_non_retryable_failure_dead_letters_immediately(self, queue) -> None:
        """Data errors are not retried."""
        job_id = queue.enqueue(JobType.RENDER_VIDEO, {}, max_attempts=5)
        queue.dequeue_next("w1")

        dead = queue.fail(job_id, "video missing", retryable=False)

        assert dead.is_dead
        assert dead.attempts == 1

    def test_fail_stores_checkpointed_payload(self, queue) -> None:
        """The next attempt sees the payload written by the failed one."""
        job_id = queue.enqueue(JobType.GENERATE_CONTENT, {"series_id": "abc"})
        queue.dequeue_next("w1")

        queue.fail(job_id, "llm down", payload={"series_id": "abc", "video_id": "v1"})

        assert queue.get(job_id).payload == {"series_id": "abc", "video_id": "v1"}

    def test_recover_stale_requeues_without_consuming_attempt(self, queue) -> None:
        """Jobs orphaned by a dead worker become visible again."""
        job_id = queue.enqueue(JobType.RENDER_VIDEO, {})
        queue.dequeue_next("w1")

        assert queue.recover_stale(60) == 0
        assert queue.recover_stale(60, now=utcnow() + timedelta(seconds=120)) == 1

        job = queue.get(job_id)
        assert job.state == JobState.QUEUED
        assert job.attempts == 0
        assert job.worker_id is None


class TestBookkeeping:
    """Ack, listing and statistics."""

    def test_ack_completes_job(self, queue) -> None:
        """Acked jobs are completed and acking twice is harmless."""
        job_id = queue.enqueue(JobType.RENDER_VIDEO, {})
        queue.dequeue_next("w1")

        queue.ack(job_id)
        queue.ack(job_id)

        job = queue.get(job_id)
        assert job.state == JobState.COMPLETED
        assert job.finished_at is not None

    def test_stats_counts_every_state(self, queue) -> None:
        """Stats report all states, including empty ones."""
        queue.enqueue(JobType.RENDER_VIDEO, {})
        running = queue.enqueue(JobType.RENDER_VIDEO, {}, priority=1)
        queue.dequeue_next("w1")

        stats = queue.stats()

        assert stats[JobState.QUEUED] == 1
        assert stats[JobState.RUNNING] == 1
        assert stats[JobState.DEAD] == 0
        assert queue.get(running).state == JobState.RUNNING

    def test_list_jobs_filters(self, queue) -> None:
        """Jobs can be filtered by type and state."""
        queue.enqueue(JobType.RENDER_VIDEO, {})
        queue.enqueue(JobType.PUBLISH_VIDEO, {})

        renders = queue.list_jobs(job_type=JobType.RENDER_VIDEO)
        assert [j.job_type for j in renders] == [JobType.RENDER_VIDEO]
        assert len(queue.list_jobs(state=JobState.QUEUED)) == 2
        assert queue.list_jobs(state=JobState.DEAD) == []
