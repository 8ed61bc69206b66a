"""Stub publisher adapter for testing."""

from uuid import uuid4

from reelflow.adapters.publisher.base import (
    MediaRef,
    PlatformPublisher,
    PublishedMedia,
    PublishMetadata,
)
from reelflow.domain.enums import MediaStatus, Platform
from reelflow.errors import ProviderError
from reelflow.logging import get_logger

logger = get_logger(__name__)


class StubPublisher(PlatformPublisher):
    """Stub adapter that simulates the container flow without external calls.

    Args:
        platform: Platform to impersonate.
        polls_until_ready: Number of PENDING polls before a container reports FINISHED.
    """

    def __init__(self, platform: Platform = Platform.YOUTUBE, polls_until_ready: int = 0) -> None:
        self._platform = platform
        self.polls_until_ready = polls_until_ready
        self._containers: dict[str, int] = {}

    @property
    def platform(self) -> Platform:
        return self._platform

    async def submit_media(self, media: MediaRef, metadata: PublishMetadata) -> str:
        container_id = f"stub_{uuid4().hex[:12]}"
        self._containers[container_id] = 0
        logger.info(
            "stub_submit_media",
            platform=self.platform,
            container_id=container_id,
            title=metadata.title,
        )
        return container_id

    async def poll_status(self, container_id: str) -> MediaStatus:
        if container_id not in self._containers:
            return MediaStatus.ERROR
        polls = self._containers[container_id]
        self._containers[container_id] = polls + 1
        if polls < self.polls_until_ready:
            return MediaStatus.PENDING
        return MediaStatus.FINISHED

    async def publish(self, container_id: str) -> PublishedMedia:
        if container_id not in self._containers:
            raise ProviderError(f"Unknown container: {container_id}")
        media_id = container_id.removeprefix("stub_")
        permalink = f"https://{self.platform}.example.com/posts/{media_id}"
        logger.info("stub_publish_completed", platform=self.platform, url=permalink)
        return PublishedMedia(id=media_id, permalink=permalink)
