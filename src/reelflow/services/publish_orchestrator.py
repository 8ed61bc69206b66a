"""Multi-platform publishing.

Each platform runs submit -> poll -> publish independently; one platform's
failure is recorded in its result and never affects the others. A publish
counts as successful when at least one platform succeeded.
"""

import asyncio
from uuid import UUID

from reelflow.adapters.publisher import MediaRef, PlatformPublisher, PublishMetadata
from reelflow.config import Settings, get_settings
from reelflow.domain.enums import MediaStatus, VideoStatus
from reelflow.domain.models import PlatformResult, PublishOutcome, Video, normalize_platforms
from reelflow.errors import DataError, ProviderError
from reelflow.logging import get_logger
from reelflow.services.videos import VideoStore
from reelflow.utils.async_utils import with_deadline
from reelflow.utils.time import utcnow

logger = get_logger(__name__)


class PublishTimeoutError(ProviderError):
    """A platform did not finish processing within the polling budget."""


class PublishRejectedError(ProviderError):
    """A platform reported that it could not process the media."""


async def poll_until_ready(
    publisher: PlatformPublisher,
    container_id: str,
    max_attempts: int = 30,
    interval: float = 2.0,
    call_timeout: float = 120.0,
) -> None:
    """Poll a container until the platform finishes processing it.

    Args:
        publisher: Platform adapter that owns the container
        container_id: Id returned by submit_media
        max_attempts: Polls before giving up
        interval: Seconds between polls
        call_timeout: Hard deadline for each poll call

    Raises:
        PublishRejectedError: The platform reported ERROR
        PublishTimeoutError: Still not finished after max_attempts polls
    """
    for attempt in range(1, max_attempts + 1):
        status = await with_deadline(
            publisher.poll_status(container_id), call_timeout, f"{publisher.platform} poll_status"
        )
        if status == MediaStatus.FINISHED:
            logger.debug(
                "publish_container_ready",
                platform=publisher.platform,
                container_id=container_id,
                attempts=attempt,
            )
            return
        if status == MediaStatus.ERROR:
            raise PublishRejectedError(
                f"{publisher.platform} failed to process media container {container_id}"
            )
        if attempt < max_attempts:
            await asyncio.sleep(interval)

    raise PublishTimeoutError(
        f"{publisher.platform} media not ready after {max_attempts} status checks"
    )


def build_metadata(video: Video, platform: str) -> PublishMetadata:
    """Publish metadata for a platform, preferring stored platform optimizations."""
    optimized = video.platform_optimizations.get(platform) or {}
    return PublishMetadata(
        title=optimized.get("title") or video.title,
        description=optimized.get("description") or video.script,
        hashtags=list(optimized.get("hashtags") or video.hashtags),
    )


class PublishOrchestrator:
    """Fan a rendered video out to several platforms."""

    def __init__(
        self,
        publishers: dict[str, PlatformPublisher],
        settings: Settings | None = None,
    ) -> None:
        self.publishers = publishers
        self.settings = settings or get_settings()

    async def _publish_one(self, video: Video, platform: str) -> PlatformResult:
        publisher = self.publishers.get(platform)
        if publisher is None:
            return PlatformResult(
                platform=platform, success=False, error=f"Unsupported platform: {platform}"
            )

        timeout = self.settings.adapter_timeout_seconds
        try:
            if not video.video_url:
                raise DataError("Video has no rendered file")
            container_id = await with_deadline(
                publisher.submit_media(
                    MediaRef(video_url=video.video_url, thumbnail_url=video.thumbnail_url),
                    build_metadata(video, platform),
                ),
                timeout,
                f"{platform} submit_media",
            )
            await poll_until_ready(
                publisher,
                container_id,
                max_attempts=self.settings.publish_poll_max_attempts,
                interval=self.settings.publish_poll_interval_seconds,
                call_timeout=timeout,
            )
            published = await with_deadline(
                publisher.publish(container_id), timeout, f"{platform} publish"
            )
        except Exception as e:
            logger.warning(
                "platform_publish_failed",
                video_id=str(video.id),
                platform=platform,
                error=str(e),
            )
            return PlatformResult(platform=platform, success=False, error=str(e))

        logger.info(
            "platform_publish_succeeded",
            video_id=str(video.id),
            platform=platform,
            url=published.permalink,
        )
        return PlatformResult(
            platform=platform,
            success=True,
            url=published.permalink,
            platform_media_id=published.id,
        )

    async def publish(self, video: Video, platforms: list[str]) -> PublishOutcome:
        """Publish a video to every requested platform.

        Platforms run concurrently; each result is independent.
        """
        targets = normalize_platforms(platforms)
        results = await asyncio.gather(*(self._publish_one(video, p) for p in targets))
        outcome = PublishOutcome(results={r.platform: r for r in results})

        logger.info(
            "publish_completed",
            video_id=str(video.id),
            succeeded=sorted(outcome.links),
            failed=sorted(outcome.errors),
        )
        return outcome


async def publish_video_entity(
    videos: VideoStore,
    orchestrator: PublishOrchestrator,
    video_id: UUID,
    platforms: list[str],
) -> PublishOutcome:
    """Publish a stored video and write the outcome back.

    Moves the video to ``publishing``, fans out, merges links and per-platform
    results, then sets ``published`` if any platform succeeded or ``failed``
    with the joined errors otherwise.

    Raises:
        DataError: No platforms were requested
        InvalidTransitionError: The video is not completed or scheduled
    """
    if not normalize_platforms(platforms):
        raise DataError("No platforms to publish to")

    video = await asyncio.to_thread(videos.transition, video_id, VideoStatus.PUBLISHING)
    outcome = await orchestrator.publish(video, platforms)

    links = {**video.published_links, **outcome.links}
    results = {**video.publish_results, **outcome.to_dict()}

    if outcome.any_success:
        await asyncio.to_thread(
            videos.transition,
            video_id,
            VideoStatus.PUBLISHED,
            published_at=utcnow(),
            published_links=links,
            publish_results=results,
            error_message=None,
            failed_stage=None,
        )
    else:
        errors = "; ".join(f"{p}: {e}" for p, e in outcome.errors.items())
        await asyncio.to_thread(
            videos.transition,
            video_id,
            VideoStatus.FAILED,
            published_links=links,
            publish_results=results,
            error_message=errors,
            failed_stage="publish",
        )
    return outcome
