"""Tests for provider and publisher adapters."""

import httpx
import pytest

from reelflow.adapters.factory import build_publishers, get_llm_provider, get_renderer_provider
from reelflow.adapters.http import raise_for_provider
from reelflow.adapters.llm import LLMMessage, OpenAIProvider, StubLLMProvider
from reelflow.adapters.publisher import (
    InstagramPublisher,
    MediaRef,
    PublishMetadata,
    StubPublisher,
    YouTubePublisher,
)
from reelflow.adapters.renderer import RenderRequest, RenderSegment, StubRendererProvider
from reelflow.config import Settings
from reelflow.domain.enums import MediaStatus, Platform
from reelflow.errors import DataError, ProviderError, ProviderNotConfiguredError


class TestPublishMetadata:
    """Caption building."""

    def test_caption_with_hashtags(self) -> None:
        metadata = PublishMetadata(title="Bees", description="How bees dance", hashtags=["#bees", "nature"])

        assert metadata.caption() == "How bees dance\n\n#bees #nature"

    def test_caption_falls_back_to_title_and_truncates(self) -> None:
        metadata = PublishMetadata(title="Bees")

        assert metadata.caption() == "Bees"
        assert metadata.caption(max_length=2) == "Be"


class TestFactory:
    """Settings driven provider selection."""

    def test_every_platform_has_a_publisher(self) -> None:
        publishers = build_publishers(Settings())

        assert set(publishers) == {p.value for p in Platform}
        assert all(isinstance(p, StubPublisher) for p in publishers.values())

    def test_enabled_integrations_replace_stubs(self) -> None:
        publishers = build_publishers(
            Settings(publisher_youtube_enabled=True, publisher_instagram_enabled=True)
        )

        assert isinstance(publishers["youtube"], YouTubePublisher)
        assert isinstance(publishers["instagram"], InstagramPublisher)
        assert isinstance(publishers["tiktok"], StubPublisher)

    def test_llm_provider_selection(self) -> None:
        assert isinstance(get_llm_provider(Settings()), StubLLMProvider)
        assert isinstance(get_llm_provider(Settings(llm_provider="OpenAI")), OpenAIProvider)

    def test_renderer_provider_follows_setting(self) -> None:
        assert isinstance(get_renderer_provider(Settings()), StubRendererProvider)
        with pytest.raises(ProviderNotConfiguredError, match="remotion"):
            get_renderer_provider(Settings(renderer_provider="remotion"))


class TestHttpErrors:
    """HTTP status mapping onto the error hierarchy."""

    def test_auth_failure_is_not_retryable(self) -> None:
        response = httpx.Response(401, json={"error": {"message": "bad token"}})

        with pytest.raises(ProviderNotConfiguredError, match="bad token"):
            raise_for_provider(response, "OpenAI")

    def test_server_error_is_transient(self) -> None:
        response = httpx.Response(503, text="unavailable")

        with pytest.raises(ProviderError, match="503") as exc_info:
            raise_for_provider(response, "OpenAI")
        assert exc_info.value.retryable

    def test_success_passes(self) -> None:
        raise_for_provider(httpx.Response(200, json={}), "OpenAI")


class TestStubs:
    """Stub adapters used in development and tests."""

    @pytest.mark.asyncio
    async def test_stub_publisher_unknown_container(self) -> None:
        publisher = StubPublisher(Platform.TIKTOK)

        assert await publisher.poll_status("missing") == MediaStatus.ERROR
        with pytest.raises(ProviderError):
            await publisher.publish("missing")

    @pytest.mark.asyncio
    async def test_stub_publisher_permalink(self) -> None:
        publisher = StubPublisher(Platform.TIKTOK)
        container_id = await publisher.submit_media(MediaRef("file:///v.mp4"), PublishMetadata("t"))

        published = await publisher.publish(container_id)

        assert published.permalink.startswith("https://tiktok.example.com/posts/")

    @pytest.mark.asyncio
    async def test_stub_renderer_writes_file(self, tmp_path) -> None:
        renderer = StubRendererProvider(tmp_path)
        request = RenderRequest(
            segments=[RenderSegment(image_url="https://img.test/a", start_time=0, end_time=2)]
        )

        result = await renderer.render(request)

        assert result.success
        assert result.video_url.startswith("file://")
        assert any(tmp_path.iterdir())

    @pytest.mark.asyncio
    async def test_stub_renderer_needs_segments(self, tmp_path) -> None:
        result = await StubRendererProvider(tmp_path).render(RenderRequest(segments=[]))

        assert not result.success

    @pytest.mark.asyncio
    async def test_openai_without_key(self) -> None:
        provider = OpenAIProvider(api_key="")
        provider.api_key = None

        with pytest.raises(ProviderNotConfiguredError):
            await provider.complete([LLMMessage(role="user", content="hi")])


class TestInstagramPublisher:
    """Graph API container flow against a mock transport."""

    def _publisher(self, handler) -> InstagramPublisher:
        publisher = InstagramPublisher(access_token="token", account_id="17841")
        publisher._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return publisher

    @pytest.mark.asyncio
    async def test_submit_and_poll(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST" and request.url.path.endswith("/17841/media"):
                assert request.url.params["media_type"] == "REELS"
                return httpx.Response(200, json={"id": "container-1"})
            if request.url.path.endswith("/container-1"):
                return httpx.Response(200, json={"status_code": "IN_PROGRESS"})
            return httpx.Response(404)

        publisher = self._publisher(handler)

        container_id = await publisher.submit_media(
            MediaRef("https://cdn.test/v.mp4"), PublishMetadata("Bees")
        )

        assert container_id == "container-1"
        assert await publisher.poll_status(container_id) == MediaStatus.PENDING

    @pytest.mark.asyncio
    async def test_requires_public_url(self) -> None:
        publisher = self._publisher(lambda request: httpx.Response(500))

        with pytest.raises(DataError):
            await publisher.submit_media(MediaRef("file:///v.mp4"), PublishMetadata("Bees"))

    @pytest.mark.asyncio
    async def test_missing_credentials(self) -> None:
        publisher = InstagramPublisher(access_token="", account_id="")
        publisher.access_token = None

        with pytest.raises(ProviderNotConfiguredError):
            await publisher.poll_status("container-1")
