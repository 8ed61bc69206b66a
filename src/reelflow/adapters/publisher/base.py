"""Base interface for platform publishing adapters.

Every platform follows the same container flow:

1. ``submit_media`` uploads (or registers) the rendered video and returns a
   platform-side container id.
2. ``poll_status`` reports whether the container finished processing.
3. ``publish`` makes the processed container public.

The orchestrator drives the flow and owns polling limits, so adapters stay
free of sleep loops.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from reelflow.domain.enums import MediaStatus, Platform


@dataclass
class MediaRef:
    """Where the rendered video lives."""

    video_url: str
    thumbnail_url: str | None = None


@dataclass
class PublishMetadata:
    """Text metadata sent along with a video."""

    title: str
    description: str | None = None
    hashtags: list[str] = field(default_factory=list)
    visibility: str = "public"  # public, private, unlisted

    def caption(self, max_length: int | None = None) -> str:
        """Build a caption from description and hashtags."""
        parts = [self.description or self.title]
        if self.hashtags:
            parts.append(" ".join(f"#{tag.lstrip('#')}" for tag in self.hashtags))
        caption = "\n\n".join(parts)
        return caption[:max_length] if max_length else caption


@dataclass
class PublishedMedia:
    """A post that is live on a platform."""

    id: str
    permalink: str | None = None


class PlatformPublisher(ABC):
    """Abstract base class for platform publishing adapters.

    Implementations:
    - StubPublisher: Simulated container flow for testing and unreleased platforms
    - YouTubePublisher: YouTube Data API resumable upload
    - InstagramPublisher: Instagram Reels via the Graph API content publishing flow

    All methods raise ``ProviderError`` (transient) or
    ``ProviderNotConfiguredError`` on failure.
    """

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """The platform this adapter publishes to."""
        ...

    @abstractmethod
    async def submit_media(self, media: MediaRef, metadata: PublishMetadata) -> str:
        """Upload the video and return the platform container id."""
        ...

    @abstractmethod
    async def poll_status(self, container_id: str) -> MediaStatus:
        """Report the processing state of a submitted container."""
        ...

    @abstractmethod
    async def publish(self, container_id: str) -> PublishedMedia:
        """Publish a processed container."""
        ...

    async def health_check(self) -> bool:
        """Check if the publisher is available and authenticated.

        Returns:
            True if publisher is operational, False otherwise
        """
        return True
