"""Base interface for video rendering providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RenderSegment:
    """One visual segment of the output video."""

    image_url: str
    start_time: float
    end_time: float
    caption: str | None = None

    @property
    def duration(self) -> float:
        return max(self.end_time - self.start_time, 0.0)


@dataclass
class RenderRequest:
    """Request for video rendering."""

    segments: list[RenderSegment]
    audio_url: str | None = None
    template: str = "default"
    resolution: str = "1080x1920"  # Vertical
    fps: int = 30
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def total_duration(self) -> float:
        return max((s.end_time for s in self.segments), default=0.0)


@dataclass
class RenderResult:
    """Result from video rendering."""

    success: bool
    video_url: str | None = None
    duration_seconds: float | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class RendererProvider(ABC):
    """Abstract base class for video rendering providers.

    Implementations:
    - StubRendererProvider: Writes a placeholder file for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def render(self, request: RenderRequest) -> RenderResult:
        """Render a video from image segments and a narration track.

        Args:
            request: Render request with segments, audio and template

        Returns:
            RenderResult with the video URL or error information
        """
        ...

    async def health_check(self) -> bool:
        """Check if the renderer is available and healthy.

        Returns:
            True if renderer is operational, False otherwise
        """
        return True
