"""Tests for the worker pool and the scheduler loop."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from reelflow.config import Settings
from reelflow.domain.enums import JobState, JobType
from reelflow.jobs.processors import PROCESSORS, ProcessorSpec
from reelflow.jobs.runner import WorkerPool
from reelflow.services.scheduler import SchedulerLoop


async def _wait_for(predicate, timeout: float = 5.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.02)


class TestWorkerPool:
    """Concurrent workers draining the queue."""

    @pytest.mark.asyncio
    async def test_processes_jobs_and_stops(self, context, queue) -> None:
        seen: list[int] = []

        async def handler(payload: dict, ctx) -> dict:
            seen.append(payload["n"])
            return {"success": True}

        for n in range(5):
            queue.enqueue(JobType.RENDER_VIDEO, {"n": n})

        with patch.dict(PROCESSORS, {JobType.RENDER_VIDEO: ProcessorSpec(handler)}):
            pool = WorkerPool(queue, context, concurrency=2)
            await pool.start()
            assert pool.running
            await _wait_for(lambda: queue.stats()[JobState.COMPLETED] == 5)
            await pool.stop()

        assert not pool.running
        assert sorted(seen) == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_start_recovers_stale_jobs(self, context, queue) -> None:
        queue.enqueue(JobType.RENDER_VIDEO, {})
        orphan = queue.dequeue_next("crashed-worker")
        await asyncio.sleep(0.01)
        pool = WorkerPool(
            queue,
            context,
            concurrency=1,
            settings=context.settings.model_copy(update={"queue_stale_after_seconds": 0}),
        )

        with patch.dict(
            PROCESSORS,
            {JobType.RENDER_VIDEO: ProcessorSpec(AsyncMock(return_value={"success": True}))},
        ):
            await pool.start()
            await _wait_for(lambda: queue.get(orphan.id).state == JobState.COMPLETED)
            await pool.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_stuck_job(self, context, queue) -> None:
        started = asyncio.Event()

        async def stuck(payload: dict, ctx) -> dict:
            started.set()
            await asyncio.sleep(60)
            return {}

        job_id = queue.enqueue(JobType.RENDER_VIDEO, {})
        settings = context.settings.model_copy(update={"worker_shutdown_timeout_seconds": 0.1})

        with patch.dict(PROCESSORS, {JobType.RENDER_VIDEO: ProcessorSpec(stuck)}):
            pool = WorkerPool(queue, context, concurrency=1, settings=settings)
            await pool.start()
            await asyncio.wait_for(started.wait(), timeout=5)
            await pool.stop()

        assert not pool.running
        # Left running for recover_stale
        assert queue.get(job_id).state == JobState.RUNNING


    @pytest.mark.asyncio
    async def test_worker_survives_ack_failure(self, context, queue) -> None:
        """A queue error while recording a result does not end the worker."""
        real_ack = queue.ack
        acks = 0

        def flaky_ack(job_id):
            nonlocal acks
            acks += 1
            if acks == 1:
                raise ConnectionError("database connection reset")
            return real_ack(job_id)

        first = queue.enqueue(JobType.RENDER_VIDEO, {}, priority=10)
        queue.enqueue(JobType.RENDER_VIDEO, {})
        queue.enqueue(JobType.RENDER_VIDEO, {})

        with (
            patch.object(queue, "ack", side_effect=flaky_ack),
            patch.dict(
                PROCESSORS,
                {JobType.RENDER_VIDEO: ProcessorSpec(AsyncMock(return_value={"success": True}))},
            ),
        ):
            pool = WorkerPool(queue, context, concurrency=1)
            await pool.start()
            await _wait_for(lambda: queue.stats()[JobState.COMPLETED] == 2)
            assert pool.running
            await pool.stop()

        # The unacknowledged job is left running for recover_stale
        assert queue.get(first).state == JobState.RUNNING


class TestSchedulerLoop:
    """Periodic scans keep running through failures."""

    @pytest.mark.asyncio
    async def test_tick_failure_does_not_stop_loop(self) -> None:
        scheduling = MagicMock()
        scheduling.process_due_posts = AsyncMock(
            side_effect=[RuntimeError("database is locked")] + [{"published": 0}] * 100
        )
        scheduling.process_due_calendars = MagicMock(return_value={"triggered": 0})
        settings = Settings(post_scan_interval_seconds=0.01, calendar_scan_interval_seconds=0.01)

        loop = SchedulerLoop(scheduling, MagicMock(), settings)
        loop.start()
        await _wait_for(lambda: scheduling.process_due_posts.await_count >= 3)
        assert loop.running
        await loop.stop()

        assert not loop.running
        assert scheduling.process_due_calendars.call_count >= 1

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self) -> None:
        scheduling = MagicMock()
        scheduling.process_due_posts = AsyncMock(return_value={})
        scheduling.process_due_calendars = MagicMock(return_value={})

        loop = SchedulerLoop(scheduling, MagicMock(), Settings())
        loop.start()
        tasks = list(loop._tasks)
        loop.start()

        assert loop._tasks == tasks
        await loop.stop()
