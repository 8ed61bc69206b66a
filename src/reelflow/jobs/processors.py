"""Job processors, one per job type.

A processor is an async callable ``(payload, context) -> outcome``. It reads
the latest persisted video, applies its transition and writes back. Every
generation sub-step is persisted before the next begins, so a retried job
skips the work that already succeeded.

Processors may write checkpoints into ``payload`` (for example the id of a
video they created); the runner stores the payload back on the job when an
attempt fails so the next attempt resumes from them.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from reelflow.adapters.factory import (
    build_publishers,
    get_image_gen_provider,
    get_llm_provider,
    get_renderer_provider,
    get_voiceover_provider,
)
from reelflow.adapters.renderer import RendererProvider, RenderRequest, RenderSegment
from reelflow.config import Settings, get_settings
from reelflow.domain.enums import JobType, PipelineStage, VideoStatus
from reelflow.domain.models import Job, Video, normalize_platforms
from reelflow.domain.state_machine import RENDERED_STATUSES
from reelflow.errors import DataError, MalformedResponseError, ProviderError
from reelflow.logging import get_logger
from reelflow.services.content_generator import ContentGenerator
from reelflow.services.job_queue import JobQueue
from reelflow.services.publish_orchestrator import PublishOrchestrator, publish_video_entity
from reelflow.services.scheduling import SchedulingService
from reelflow.services.storage import StorageService
from reelflow.services.videos import VideoStore
from reelflow.utils.async_utils import with_deadline
from reelflow.utils.time import parse_iso

logger = get_logger(__name__)


@dataclass
class ProcessorContext:
    """Services shared by all processors."""

    videos: VideoStore
    queue: JobQueue
    content: ContentGenerator
    renderer: RendererProvider
    orchestrator: PublishOrchestrator
    scheduling: SchedulingService
    settings: Settings


def build_context(
    settings: Settings | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> ProcessorContext:
    """Wire the configured adapters and services together."""
    settings = settings or get_settings()
    videos = VideoStore(session_factory)
    queue = JobQueue(session_factory, settings)
    return ProcessorContext(
        videos=videos,
        queue=queue,
        content=ContentGenerator(
            llm=get_llm_provider(settings),
            image_gen=get_image_gen_provider(settings),
            voiceover=get_voiceover_provider(settings),
            storage=StorageService(settings.storage_path, settings.storage_base_url),
            settings=settings,
        ),
        renderer=get_renderer_provider(settings),
        orchestrator=PublishOrchestrator(build_publishers(settings), settings),
        scheduling=SchedulingService(queue, videos, session_factory, settings),
        settings=settings,
    )


Processor = Callable[[dict[str, Any], ProcessorContext], Awaitable[dict[str, Any]]]
DeadLetterHook = Callable[[Job, str, ProcessorContext], None]


def _uuid(payload: dict[str, Any], key: str) -> UUID:
    value = payload.get(key)
    if not value:
        raise DataError(f"Job payload is missing {key}")
    try:
        return UUID(str(value))
    except ValueError as e:
        raise DataError(f"Invalid {key}: {value}") from e


def _platforms(payload: dict[str, Any], key: str = "platforms") -> list[str]:
    return normalize_platforms(list(payload.get(key) or []))


# =============================================================================
# Content generation
# =============================================================================


def next_generation_stage(video: Video) -> PipelineStage | None:
    """First generation sub-step whose result is not persisted yet."""
    if not video.has_script:
        return PipelineStage.SCRIPT
    if not video.media:
        return PipelineStage.MEDIA
    if not video.narration:
        return PipelineStage.NARRATION
    if not video.hashtags:
        return PipelineStage.HASHTAGS
    if not video.thumbnail_url:
        return PipelineStage.THUMBNAIL
    return None


async def run_generation(
    video: Video,
    context: ProcessorContext,
    max_images: int | None = None,
    voice_id: str | None = None,
) -> list[str]:
    """Run the missing generation sub-steps for a processing video, in order.

    Returns:
        The stages that ran this time
    """
    content = context.content
    videos = context.videos
    ran: list[str] = []

    while (stage := next_generation_stage(video)) is not None:
        logger.info("generation_step_started", video_id=str(video.id), stage=stage.value)

        if stage == PipelineStage.SCRIPT:
            script = await content.generate_script(video.title)
            video = await asyncio.to_thread(videos.update, video.id, script=script)

        elif stage == PipelineStage.MEDIA:
            prompts = await content.generate_image_prompts(video.script or "")
            media = await content.generate_images(prompts or [video.title], max_images)
            if not media:
                raise MalformedResponseError("Image generation produced no media")
            video = await asyncio.to_thread(
                videos.update, video.id, media=[m.to_dict() for m in media]
            )

        elif stage == PipelineStage.NARRATION:
            narration, captions = await content.generate_narration(
                video.id, video.script or "", voice_id
            )
            video = await asyncio.to_thread(
                videos.update,
                video.id,
                narration=narration.to_dict(),
                captions=[c.to_dict() for c in captions],
            )

        elif stage == PipelineStage.HASHTAGS:
            hashtags = await content.generate_hashtags(video.title)
            if not hashtags:
                raise MalformedResponseError("LLM returned no hashtags")
            video = await asyncio.to_thread(videos.update, video.id, hashtags=hashtags)

        elif stage == PipelineStage.THUMBNAIL:
            thumbnail_url = await content.generate_thumbnail(video.title)
            video = await asyncio.to_thread(videos.update, video.id, thumbnail_url=thumbnail_url)

        ran.append(stage.value)

    return ran


async def _start_generation(video_id: UUID, context: ProcessorContext) -> Video | None:
    """Move a video into processing.

    Returns None for videos already past generation, and for failed videos,
    which only restart through an explicit retry.
    """
    video = await asyncio.to_thread(context.videos.get, video_id)
    if video.status in RENDERED_STATUSES or video.status == VideoStatus.FAILED:
        logger.info("generation_not_started", video_id=str(video_id), status=video.status)
        return None
    return await asyncio.to_thread(
        context.videos.transition, video_id, VideoStatus.PROCESSING, allow_same=True
    )


async def _create_topic_video(payload: dict[str, Any], context: ProcessorContext) -> UUID:
    """Discover a topic and create a draft for it (series and calendar triggers)."""
    series_id = UUID(str(payload["series_id"])) if payload.get("series_id") else None
    topics = await context.content.discover_topics(payload.get("category"))

    used: set[str] = set()
    if series_id is not None:
        existing = await asyncio.to_thread(
            context.videos.list_videos, series_id=series_id, limit=500
        )
        used = {v.title.strip().lower() for v in existing}
    fresh = [t for t in topics if t and t.strip().lower() not in used]
    if not fresh:
        raise MalformedResponseError("Topic discovery returned no new topics")

    video = await asyncio.to_thread(
        context.videos.create,
        payload.get("owner_id") or "system",
        fresh[0],
        series_id,
    )
    logger.info("topic_video_created", video_id=str(video.id), topic=fresh[0])
    return video.id


async def generate_content(payload: dict[str, Any], context: ProcessorContext) -> dict[str, Any]:
    """Generate script, media, narration, hashtags and thumbnail for a video.

    Payload:
        video_id: Video to generate (omitted for series or calendar triggers)
        series_id, owner_id, category: Used to create a draft from a discovered topic
        voice_id: Narration voice
        max_images: Image cap (defaults to settings)
        publish_platforms: Forwarded to render-video for automatic publishing
    """
    max_images = payload.get("max_images")
    if max_images is not None and (not isinstance(max_images, int) or max_images < 1):
        raise DataError(f"max_images must be a positive integer, got {max_images!r}")

    if not payload.get("video_id"):
        payload["video_id"] = str(await _create_topic_video(payload, context))
    video_id = _uuid(payload, "video_id")

    video = await _start_generation(video_id, context)
    if video is None:
        logger.info("generate_content_already_done", video_id=str(video_id))
        return {"success": True, "video_id": str(video_id), "skipped": True}

    ran = await run_generation(
        video,
        context,
        max_images=max_images,
        voice_id=payload.get("voice_id"),
    )

    outcome: dict[str, Any] = {"success": True, "video_id": str(video_id), "steps": ran}
    if context.settings.auto_chain_render:
        render_payload: dict[str, Any] = {"video_id": str(video_id)}
        platforms = _platforms(payload, "publish_platforms")
        if platforms:
            render_payload["publish_platforms"] = platforms
        job_id = await asyncio.to_thread(
            context.queue.enqueue, JobType.RENDER_VIDEO, render_payload
        )
        outcome["render_job_id"] = str(job_id)

    logger.info("generate_content_completed", video_id=str(video_id), steps=ran)
    return outcome


def _generation_dead_letter(job: Job, error: str, context: ProcessorContext) -> None:
    if not job.payload.get("video_id"):
        return
    video_id = UUID(str(job.payload["video_id"]))
    video = context.videos.find(video_id)
    if video is None:
        return
    stage = next_generation_stage(video) or PipelineStage.SCRIPT
    context.videos.mark_failed(video_id, error, stage.value)


# =============================================================================
# Rendering
# =============================================================================


def build_segments(video: Video) -> list[RenderSegment]:
    """Spread the video's images evenly over the narration timeline.

    Each segment carries the captions that start inside it.
    """
    images = [m["url"] for m in video.media if m.get("url")]
    if not images:
        return []
    captions = video.captions
    total = max((c["end_time"] for c in captions), default=0.0) or 3.0 * len(images)
    step = total / len(images)

    segments = []
    for index, url in enumerate(images):
        start = index * step
        end = total if index == len(images) - 1 else (index + 1) * step
        text = " ".join(
            c["text"]
            for c in captions
            if c["start_time"] >= start and (c["start_time"] < end or index == len(images) - 1)
        )
        segments.append(
            RenderSegment(
                image_url=url,
                start_time=round(start, 3),
                end_time=round(end, 3),
                caption=text or None,
            )
        )
    return segments


async def render_video(payload: dict[str, Any], context: ProcessorContext) -> dict[str, Any]:
    """Render a generated video and mark it completed.

    Payload:
        video_id: Video to render
        template: Renderer template name
        publish_platforms: When present, publish-video is enqueued afterwards
    """
    video_id = _uuid(payload, "video_id")
    video = await asyncio.to_thread(context.videos.get, video_id)

    if video.status in RENDERED_STATUSES:
        logger.info("render_video_already_done", video_id=str(video_id))
        return {"success": True, "video_id": str(video_id), "skipped": True}
    if video.status != VideoStatus.PROCESSING:
        raise DataError(f"Video {video_id} is {video.status}, expected processing")
    if not video.has_script or not video.media or not video.narration:
        raise DataError(f"Video {video_id} is missing generated content")

    request = RenderRequest(
        segments=build_segments(video),
        audio_url=video.narration.get("audio_url"),
        template=payload.get("template") or "default",
    )
    logger.info(
        "render_started",
        video_id=str(video_id),
        renderer=context.renderer.name,
        segments=len(request.segments),
    )
    result = await with_deadline(
        context.renderer.render(request),
        context.settings.adapter_timeout_seconds,
        "render",
    )
    if not result.success or not result.video_url:
        raise ProviderError(result.error_message or "Renderer returned no video")

    await asyncio.to_thread(
        context.videos.transition,
        video_id,
        VideoStatus.COMPLETED,
        video_url=result.video_url,
    )

    outcome: dict[str, Any] = {
        "success": True,
        "video_id": str(video_id),
        "video_url": result.video_url,
    }
    platforms = _platforms(payload, "publish_platforms")
    if platforms:
        job_id = await asyncio.to_thread(
            context.queue.enqueue,
            JobType.PUBLISH_VIDEO,
            {"video_id": str(video_id), "platforms": platforms},
        )
        outcome["publish_job_id"] = str(job_id)

    logger.info("render_completed", video_id=str(video_id), video_url=result.video_url)
    return outcome


def _stage_dead_letter(stage: PipelineStage) -> DeadLetterHook:
    def hook(job: Job, error: str, context: ProcessorContext) -> None:
        if job.payload.get("video_id"):
            context.videos.mark_failed(UUID(str(job.payload["video_id"])), error, stage.value)

    return hook


# =============================================================================
# Scheduling and publishing
# =============================================================================


async def schedule_video(payload: dict[str, Any], context: ProcessorContext) -> dict[str, Any]:
    """Schedule a completed video. Publishing happens later in publish-video.

    Payload:
        video_id: Video to schedule
        scheduled_at: ISO 8601 publish time
        platforms: Target platforms
    """
    video_id = _uuid(payload, "video_id")
    platforms = _platforms(payload)
    if not platforms:
        raise DataError("No platforms to schedule")
    try:
        scheduled_at = parse_iso(payload.get("scheduled_at"))
    except (TypeError, ValueError) as e:
        raise DataError(f"Invalid scheduled_at: {payload.get('scheduled_at')}") from e
    if scheduled_at is None:
        raise DataError("Job payload is missing scheduled_at")

    post = await asyncio.to_thread(
        context.scheduling.schedule_video, video_id, platforms, scheduled_at
    )
    return {
        "success": True,
        "video_id": str(video_id),
        "scheduled_post_id": str(post["id"]),
        "publish_job_id": str(post["publish_job_id"]),
        "scheduled_at": post["scheduled_at"].isoformat(),
    }


async def publish_video(payload: dict[str, Any], context: ProcessorContext) -> dict[str, Any]:
    """Publish a video to its platforms.

    Payload:
        video_id: Video to publish
        platforms: Target platforms
        scheduled_post_id: Set for scheduled publishes; the post is claimed first
            so the due-post scan and this job never both publish it
    """
    video_id = _uuid(payload, "video_id")

    if payload.get("scheduled_post_id"):
        post_id = _uuid(payload, "scheduled_post_id")
        outcome = await context.scheduling.publish_post(post_id, context.orchestrator)
        if outcome is None:
            return {"success": True, "video_id": str(video_id), "skipped": True}
    else:
        video = await asyncio.to_thread(context.videos.get, video_id)
        if video.status == VideoStatus.PUBLISHED:
            logger.info("publish_video_already_done", video_id=str(video_id))
            return {"success": True, "video_id": str(video_id), "skipped": True}
        outcome = await publish_video_entity(
            context.videos, context.orchestrator, video_id, _platforms(payload)
        )

    return {
        "success": outcome.any_success,
        "video_id": str(video_id),
        "links": outcome.links,
        "results": outcome.to_dict(),
    }


# =============================================================================
# Optimization and batches
# =============================================================================


async def optimize_content(payload: dict[str, Any], context: ProcessorContext) -> dict[str, Any]:
    """Store per-platform title, description and hashtags for a video.

    One platform's provider failure does not affect the others; the job only
    fails when every platform failed. Malformed model output is a data error.

    Payload:
        video_id: Video to optimize
        platforms: Platforms to optimize for
    """
    video_id = _uuid(payload, "video_id")
    platforms = _platforms(payload)
    if not platforms:
        raise DataError("No platforms to optimize for")

    video = await asyncio.to_thread(context.videos.get, video_id)
    if not video.has_script:
        raise DataError(f"Video {video_id} has no script to optimize")

    optimizations: dict[str, Any] = {}
    errors: dict[str, str] = {}
    for platform in platforms:
        try:
            optimizations[platform] = await context.content.optimize_for_platform(
                video.script or "", platform
            )
        except MalformedResponseError:
            raise
        except Exception as e:
            logger.warning("platform_optimization_failed", platform=platform, error=str(e))
            errors[platform] = str(e)

    if not optimizations:
        raise ProviderError("; ".join(f"{p}: {e}" for p, e in errors.items()))

    latest = await asyncio.to_thread(context.videos.get, video_id)
    await asyncio.to_thread(
        context.videos.update,
        video_id,
        platform_optimizations={**latest.platform_optimizations, **optimizations},
    )
    return {
        "success": True,
        "video_id": str(video_id),
        "optimized": sorted(optimizations),
        "errors": errors,
    }


async def batch_generate(payload: dict[str, Any], context: ProcessorContext) -> dict[str, Any]:
    """Create and generate one video per topic.

    A topic's failure is logged and reported without stopping the batch.

    Payload:
        topics: Video topics
        owner_id: Owner of the created videos
        series_id: Optional series for the created videos
        voice_id: Narration voice
    """
    topics = [t.strip() for t in payload.get("topics") or [] if t and t.strip()]
    if not topics:
        raise DataError("Batch has no topics")
    owner_id = payload.get("owner_id") or "system"
    series_id = UUID(str(payload["series_id"])) if payload.get("series_id") else None
    created: dict[str, str] = payload.setdefault("created", {})

    results: list[dict[str, Any]] = []
    for index, topic in enumerate(topics):
        if index > 0:
            await asyncio.sleep(context.settings.batch_item_delay_seconds)

        video_id: UUID | None = UUID(created[topic]) if topic in created else None
        try:
            if video_id is None:
                draft = await asyncio.to_thread(
                    context.videos.create, owner_id, topic, series_id
                )
                video_id = draft.id
                created[topic] = str(video_id)

            video = await _start_generation(video_id, context)
            if video is not None:
                await run_generation(
                    video,
                    context,
                    max_images=context.settings.batch_max_images,
                    voice_id=payload.get("voice_id"),
                )
                if context.settings.auto_chain_render:
                    await asyncio.to_thread(
                        context.queue.enqueue,
                        JobType.RENDER_VIDEO,
                        {"video_id": str(video_id)},
                    )
            results.append({"topic": topic, "video_id": str(video_id), "success": True})
        except Exception as e:
            logger.error("batch_item_failed", topic=topic, error=str(e))
            if video_id is not None:
                latest = await asyncio.to_thread(context.videos.find, video_id)
                if latest is not None:
                    stage = next_generation_stage(latest) or PipelineStage.SCRIPT
                    await asyncio.to_thread(
                        context.videos.mark_failed, video_id, str(e), stage.value
                    )
            results.append(
                {
                    "topic": topic,
                    "video_id": str(video_id) if video_id else None,
                    "success": False,
                    "error": str(e),
                }
            )

    succeeded = sum(1 for r in results if r["success"])
    logger.info("batch_generate_completed", total=len(results), succeeded=succeeded)
    return {"success": True, "total": len(results), "succeeded": succeeded, "results": results}


# =============================================================================
# Registry
# =============================================================================


@dataclass(frozen=True)
class ProcessorSpec:
    """A processor and the hook run when its job is dead-lettered."""

    handler: Processor
    on_dead_letter: DeadLetterHook | None = None


PROCESSORS: dict[JobType, ProcessorSpec] = {
    JobType.GENERATE_CONTENT: ProcessorSpec(generate_content, _generation_dead_letter),
    JobType.RENDER_VIDEO: ProcessorSpec(render_video, _stage_dead_letter(PipelineStage.RENDER)),
    JobType.SCHEDULE_VIDEO: ProcessorSpec(
        schedule_video, _stage_dead_letter(PipelineStage.SCHEDULE)
    ),
    JobType.PUBLISH_VIDEO: ProcessorSpec(publish_video, _stage_dead_letter(PipelineStage.PUBLISH)),
    # Optimization only adds metadata; a rendered video is not failed over it
    JobType.OPTIMIZE_CONTENT: ProcessorSpec(optimize_content),
    # Items are failed individually inside the batch
    JobType.BATCH_GENERATE: ProcessorSpec(batch_generate),
}

