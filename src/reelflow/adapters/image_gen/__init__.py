"""Image generation provider adapters."""

from reelflow.adapters.image_gen.base import ImageGenProvider, ImageGenRequest, ImageGenResult
from reelflow.adapters.image_gen.openai_dalle import OpenAIDalleProvider
from reelflow.adapters.image_gen.stub import StubImageGenProvider

__all__ = [
    "ImageGenProvider",
    "ImageGenRequest",
    "ImageGenResult",
    "OpenAIDalleProvider",
    "StubImageGenProvider",
]
