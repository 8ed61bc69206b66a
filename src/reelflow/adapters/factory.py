"""Provider selection driven by settings."""

from reelflow.adapters.image_gen import ImageGenProvider, OpenAIDalleProvider, StubImageGenProvider
from reelflow.adapters.llm import LLMProvider, OpenAIProvider, StubLLMProvider
from reelflow.adapters.publisher import (
    InstagramPublisher,
    PlatformPublisher,
    StubPublisher,
    YouTubePublisher,
)
from reelflow.adapters.renderer import RendererProvider, StubRendererProvider
from reelflow.adapters.voiceover import (
    ElevenLabsProvider,
    StubVoiceoverProvider,
    VoiceoverProvider,
)
from reelflow.config import Settings, get_settings
from reelflow.domain.enums import Platform
from reelflow.errors import ProviderNotConfiguredError


def get_llm_provider(settings: Settings | None = None) -> LLMProvider:
    """Get the configured LLM provider."""
    settings = settings or get_settings()
    if settings.llm_provider.lower() == "openai":
        return OpenAIProvider()
    return StubLLMProvider()


def get_image_gen_provider(settings: Settings | None = None) -> ImageGenProvider:
    """Get the configured image generation provider."""
    settings = settings or get_settings()
    if settings.image_gen_provider.lower() in ("openai", "dalle"):
        return OpenAIDalleProvider()
    return StubImageGenProvider()


def get_voiceover_provider(settings: Settings | None = None) -> VoiceoverProvider:
    """Get the configured voiceover provider."""
    settings = settings or get_settings()
    if settings.voiceover_provider.lower() == "elevenlabs":
        return ElevenLabsProvider()
    return StubVoiceoverProvider()


def get_renderer_provider(settings: Settings | None = None) -> RendererProvider:
    """Get the configured renderer provider.

    Raises:
        ProviderNotConfiguredError: The configured renderer is not available
    """
    settings = settings or get_settings()
    if settings.renderer_provider.lower() == "stub":
        return StubRendererProvider()
    raise ProviderNotConfiguredError(f"Unknown renderer provider: {settings.renderer_provider}")


def build_publishers(settings: Settings | None = None) -> dict[str, PlatformPublisher]:
    """Build the platform -> publisher registry.

    Platforms without a real integration enabled fall back to the stub, so
    TikTok and Facebook are always simulated.
    """
    settings = settings or get_settings()
    publishers: dict[str, PlatformPublisher] = {
        platform.value: StubPublisher(platform) for platform in Platform
    }
    if settings.publisher_youtube_enabled:
        publishers[Platform.YOUTUBE] = YouTubePublisher()
    if settings.publisher_instagram_enabled:
        publishers[Platform.INSTAGRAM] = InstagramPublisher()
    return publishers
