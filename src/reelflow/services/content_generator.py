"""AI content generation built on the LLM, image and voice adapters.

Every adapter call runs under the configured hard deadline. Image and
thumbnail generation degrade to placeholders instead of failing; everything
else raises so the job runner can retry.
"""

import asyncio
import json
import re
from uuid import UUID

from reelflow.adapters.image_gen import ImageGenProvider, ImageGenRequest
from reelflow.adapters.llm import LLMMessage, LLMProvider
from reelflow.adapters.voiceover import VoiceoverProvider, VoiceoverRequest
from reelflow.config import Settings, get_settings
from reelflow.domain.models import CaptionSegment, MediaItem, Narration
from reelflow.errors import MalformedResponseError, ProviderError, ProviderNotConfiguredError
from reelflow.logging import get_logger
from reelflow.services.storage import StorageService
from reelflow.utils.async_utils import with_deadline

logger = get_logger(__name__)

PLACEHOLDER_IMAGE_URL = "https://placeholder.com/400x300?text=Image+Generation+Failed"

PLATFORM_SPECS = {
    "youtube": "YouTube (longer descriptions, SEO-focused titles, educational tone)",
    "tiktok": "TikTok (short, catchy titles, trending hashtags, casual tone)",
    "instagram": "Instagram (visual-focused descriptions, lifestyle hashtags, engaging tone)",
    "facebook": "Facebook (community-focused, longer descriptions, discussion-encouraging)",
}

THUMBNAIL_STYLES = {
    "youtube": "YouTube thumbnail style, bold text overlay, high contrast, eye-catching design",
    "tiktok": "TikTok style thumbnail, vertical format, trendy and colorful",
    "instagram": "Instagram post style, square format, aesthetic and clean design",
}

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_LIST_NUMBER = re.compile(r"^\d+\.\s*")


def estimate_timestamps(
    text: str,
    words_per_second: float = 2.5,
    pause: float = 0.5,
) -> list[CaptionSegment]:
    """Estimate caption timings from narration text.

    Sentences are split on runs of ``.``, ``!`` and ``?``. Each sentence lasts
    ``word_count / words_per_second`` seconds and the next one starts after
    ``pause`` seconds of silence.

    Example:
        >>> [(c.start_time, c.end_time) for c in estimate_timestamps("Hello world. This is a test.")]
        [(0.0, 0.8), (1.3, 2.9)]
    """
    segments: list[CaptionSegment] = []
    current = 0.0
    for piece in _SENTENCE_SPLIT.split(text):
        sentence = piece.strip()
        if not sentence:
            continue
        duration = len(sentence.split()) / words_per_second
        segments.append(
            CaptionSegment(
                text=sentence,
                start_time=round(current, 3),
                end_time=round(current + duration, 3),
            )
        )
        current += duration + pause
    return segments


def _lines(content: str) -> list[str]:
    return [line.strip() for line in content.splitlines() if line.strip()]


class ContentGenerator:
    """Script, media, narration and metadata generation for videos."""

    def __init__(
        self,
        llm: LLMProvider,
        image_gen: ImageGenProvider,
        voiceover: VoiceoverProvider,
        storage: StorageService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.llm = llm
        self.image_gen = image_gen
        self.voiceover = voiceover
        self.storage = storage or StorageService()
        self.settings = settings or get_settings()

    async def _complete(
        self,
        system: str,
        prompt: str,
        operation: str,
        max_tokens: int,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        response = await with_deadline(
            self.llm.complete(
                [LLMMessage(role="system", content=system), LLMMessage(role="user", content=prompt)],
                temperature=temperature,
                max_tokens=max_tokens,
                json_mode=json_mode,
            ),
            self.settings.adapter_timeout_seconds,
            operation,
        )
        return response.content or ""

    async def generate_script(self, topic: str, duration: int | None = None) -> str:
        """Write a narration script for a short video about a topic."""
        duration = duration or self.settings.script_duration_seconds
        prompt = (
            f'Create an engaging {duration}-second video script about "{topic}".\n'
            "The script should be:\n"
            "- Attention-grabbing from the first second\n"
            "- Informative and valuable\n"
            "- Optimized for social media engagement\n"
            "- Include natural pauses for visuals\n"
            "- End with a strong call-to-action\n\n"
            "Return only the narration text."
        )
        script = await self._complete(
            "You are a professional video script writer specializing in social media content.",
            prompt,
            "generate_script",
            max_tokens=1000,
        )
        if not script.strip():
            raise MalformedResponseError("LLM returned an empty script")
        return script.strip()

    async def generate_image_prompts(self, script: str) -> list[str]:
        """Derive image generation prompts from a script, one per visual beat."""
        prompt = (
            "Analyze this video script and generate 5-8 detailed image generation prompts "
            f'for the visual elements:\n\nScript: "{script}"\n\n'
            "Each prompt should be descriptive, specific and relevant to the script. "
            "Return only the image prompts, one per line."
        )
        content = await self._complete(
            "You are an expert at creating detailed prompts for AI image generation.",
            prompt,
            "generate_image_prompts",
            max_tokens=800,
        )
        return _lines(content)

    async def _generate_one_image(self, index: int, prompt: str, semaphore: asyncio.Semaphore) -> MediaItem:
        async with semaphore:
            try:
                result = await with_deadline(
                    self.image_gen.generate(ImageGenRequest(prompt=prompt)),
                    self.settings.adapter_timeout_seconds,
                    "generate_image",
                )
                if not result.success or not result.image_url:
                    raise ProviderError(result.error_message or "image generation failed")
                return MediaItem(type="image", url=result.image_url)
            except ProviderNotConfiguredError:
                raise
            except Exception as e:
                logger.warning("image_generation_failed", index=index, error=str(e))
                return MediaItem(type="image", url=PLACEHOLDER_IMAGE_URL, source="placeholder")

    async def generate_images(self, prompts: list[str], max_images: int | None = None) -> list[MediaItem]:
        """Generate images for prompts, keeping prompt order.

        At most ``image_concurrency`` requests are in flight. A failed image is
        replaced by a placeholder so one bad prompt never fails the video.

        Raises:
            ProviderNotConfiguredError: The image provider is not configured.
        """
        limit = max_images if max_images is not None else self.settings.max_images
        selected = prompts[:limit]
        semaphore = asyncio.Semaphore(self.settings.image_concurrency)
        media = await asyncio.gather(
            *(self._generate_one_image(i, p, semaphore) for i, p in enumerate(selected))
        )
        placeholders = sum(1 for m in media if m.source == "placeholder")
        logger.info("images_generated", count=len(media), placeholders=placeholders)
        return list(media)

    async def generate_hashtags(self, topic: str, platform: str = "general") -> list[str]:
        """Suggest hashtags (without the leading #) for a topic."""
        target = (
            f"optimized for {platform}" if platform != "general" else "for general social media use"
        )
        prompt = (
            f'Generate 15-20 relevant hashtags for a video about "{topic}" {target}.\n'
            "Include a mix of popular, niche-specific and long-tail hashtags.\n"
            "Return only the hashtags without the # symbol, one per line."
        )
        content = await self._complete(
            "You are a social media hashtag expert who understands platform algorithms.",
            prompt,
            "generate_hashtags",
            max_tokens=300,
            temperature=0.6,
        )
        return [tag.lstrip("#").strip() for tag in _lines(content) if tag.lstrip("#").strip()]

    async def optimize_for_platform(self, content: str, platform: str) -> dict[str, object]:
        """Produce a platform-specific title, description and hashtags.

        Raises:
            MalformedResponseError: The model did not return valid JSON.
        """
        spec = PLATFORM_SPECS.get(platform, platform)
        title_limit = "60 characters max" if platform == "youtube" else "30 characters max"
        description_limit = "150 characters max" if platform == "tiktok" else "500 characters max"
        prompt = (
            f'Optimize this video content for {spec}:\n\nContent: "{content}"\n\n'
            f"Generate:\n1. An optimized title ({title_limit})\n"
            f"2. A platform-appropriate description ({description_limit})\n"
            "3. 10-15 relevant hashtags for this platform\n\n"
            'Format as JSON: {"title": "...", "description": "...", "hashtags": ["tag1", ...]}'
        )
        raw = await self._complete(
            f"You are a social media optimization expert specializing in {platform} content.",
            prompt,
            "optimize_for_platform",
            max_tokens=600,
            temperature=0.6,
            json_mode=True,
        )
        try:
            result = json.loads(raw or "{}")
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Failed to parse optimization for {platform}") from e
        if not isinstance(result, dict):
            raise MalformedResponseError(f"Optimization for {platform} is not a JSON object")

        return {
            "title": result.get("title") or "",
            "description": result.get("description") or "",
            "hashtags": list(result.get("hashtags") or []),
        }

    async def discover_topics(self, category: str | None = None) -> list[str]:
        """List trending video topics, optionally within a category."""
        scope = f"in the {category} category" if category else "across various categories"
        prompt = (
            f"Generate 10 trending and engaging video topics {scope}. Focus on topics that "
            "would perform well on YouTube, TikTok and Instagram. "
            "Return only the topic titles, one per line."
        )
        content = await self._complete(
            "You are a social media content strategist who identifies viral and trending topics.",
            prompt,
            "discover_topics",
            max_tokens=500,
            temperature=0.8,
        )
        return [_LIST_NUMBER.sub("", line).strip() for line in _lines(content)]

    async def generate_thumbnail(self, title: str, style: str = "youtube") -> str:
        """Generate a thumbnail image URL, falling back to a placeholder.

        Only a missing provider configuration is raised; any other failure
        returns ``PLACEHOLDER_IMAGE_URL``.
        """
        prompt = (
            f'Create a professional thumbnail for a video titled "{title}". '
            f"{THUMBNAIL_STYLES.get(style, THUMBNAIL_STYLES['youtube'])}. "
            "The image should be engaging, high-quality and optimized for social media."
        )
        try:
            result = await with_deadline(
                self.image_gen.generate(ImageGenRequest(prompt=prompt, aspect_ratio="16:9")),
                self.settings.adapter_timeout_seconds,
                "generate_thumbnail",
            )
        except ProviderNotConfiguredError:
            raise
        except Exception as e:
            logger.warning("thumbnail_generation_failed", error=str(e))
            return PLACEHOLDER_IMAGE_URL

        if not result.success or not result.image_url:
            logger.warning("thumbnail_generation_failed", error=result.error_message)
            return PLACEHOLDER_IMAGE_URL
        return result.image_url

    async def synthesize_voice(self, text: str, voice_id: str | None = None) -> bytes:
        """Synthesize narration audio.

        Raises:
            ProviderError: The provider reported a failure.
        """
        result = await with_deadline(
            self.voiceover.generate(VoiceoverRequest(text=text, voice_id=voice_id)),
            self.settings.adapter_timeout_seconds,
            "synthesize_voice",
        )
        if not result.success or not result.audio_data:
            raise ProviderError(result.error_message or "voice synthesis returned no audio")
        return result.audio_data

    async def generate_narration(
        self,
        video_id: UUID,
        script: str,
        voice_id: str | None = None,
    ) -> tuple[Narration, list[CaptionSegment]]:
        """Synthesize, store and caption the narration for a script."""
        voice_id = voice_id or self.settings.default_voice_id
        audio = await self.synthesize_voice(script, voice_id)
        stored = await asyncio.to_thread(self.storage.store_bytes, audio, "audio", video_id)
        captions = estimate_timestamps(
            script,
            words_per_second=self.settings.words_per_second,
            pause=self.settings.caption_pause_seconds,
        )
        return Narration(voice_id=voice_id, text=script, audio_url=stored.url), captions
