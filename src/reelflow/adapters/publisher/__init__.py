"""Platform publisher adapters."""

from reelflow.adapters.publisher.base import (
    MediaRef,
    PlatformPublisher,
    PublishedMedia,
    PublishMetadata,
)
from reelflow.adapters.publisher.instagram import InstagramPublisher
from reelflow.adapters.publisher.stub import StubPublisher
from reelflow.adapters.publisher.youtube import YouTubePublisher

__all__ = [
    "InstagramPublisher",
    "MediaRef",
    "PlatformPublisher",
    "PublishMetadata",
    "PublishedMedia",
    "StubPublisher",
    "YouTubePublisher",
]
