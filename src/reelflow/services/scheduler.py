"""In-process scheduler loop.

Runs the scheduled-post scan and the calendar scan as two asyncio tasks.
Deployments may instead drive the same scans from Celery beat
(see ``reelflow.jobs.tasks``).
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from reelflow.config import Settings, get_settings
from reelflow.logging import get_logger
from reelflow.services.publish_orchestrator import PublishOrchestrator
from reelflow.services.scheduling import SchedulingService

logger = get_logger(__name__)


class SchedulerLoop:
    """Periodically promote due scheduled posts and trigger due calendars."""

    def __init__(
        self,
        scheduling: SchedulingService,
        orchestrator: PublishOrchestrator,
        settings: Settings | None = None,
    ) -> None:
        self.scheduling = scheduling
        self.orchestrator = orchestrator
        self.settings = settings or get_settings()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def scan_posts(self) -> dict[str, int]:
        return await self.scheduling.process_due_posts(self.orchestrator)

    async def scan_calendars(self) -> dict[str, int]:
        return await asyncio.to_thread(self.scheduling.process_due_calendars)

    async def _run(
        self,
        name: str,
        tick: Callable[[], Awaitable[Any]],
        interval: float,
    ) -> None:
        logger.info("scheduler_loop_started", loop=name, interval=interval)
        while True:
            try:
                await tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("scheduler_tick_failed", loop=name, error=str(e))
            await asyncio.sleep(interval)

    def start(self) -> None:
        """Start both scan loops on the running event loop."""
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(
                self._run("posts", self.scan_posts, self.settings.post_scan_interval_seconds),
                name="scheduler-posts",
            ),
            asyncio.create_task(
                self._run(
                    "calendars",
                    self.scan_calendars,
                    self.settings.calendar_scan_interval_seconds,
                ),
                name="scheduler-calendars",
            ),
        ]

    async def stop(self) -> None:
        """Cancel both loops and wait for them to finish."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("scheduler_loop_stopped")
