"""Base interface for image generation providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ImageGenRequest:
    """Request for image generation."""

    prompt: str
    aspect_ratio: str = "9:16"  # Vertical for Shorts/Reels
    quality: str = "standard"  # hd or standard
    size: str | None = None  # Override size (e.g., "1024x1792")
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class ImageGenResult:
    """Result from image generation."""

    success: bool
    image_url: str | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class ImageGenProvider(ABC):
    """Abstract base class for image generation providers.

    Implementations:
    - StubImageGenProvider: Returns placeholder images for testing
    - OpenAIDalleProvider: Uses the OpenAI images API
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def generate(self, request: ImageGenRequest) -> ImageGenResult:
        """Generate an image from the given request.

        Args:
            request: Image generation request with prompt and parameters

        Returns:
            ImageGenResult with image URL, or success=False with an error

        Raises:
            ProviderNotConfiguredError: Missing credentials
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available.

        Returns:
            True if provider is operational
        """
        return True

    def get_aspect_ratio_size(self, aspect_ratio: str) -> str:
        """Convert aspect ratio to pixel dimensions.

        Args:
            aspect_ratio: Ratio string like "9:16"

        Returns:
            Size string like "1024x1792"
        """
        size_map = {
            "9:16": "1024x1792",  # Vertical
            "16:9": "1792x1024",  # Horizontal
            "1:1": "1024x1024",  # Square
        }
        return size_map.get(aspect_ratio, "1024x1792")
