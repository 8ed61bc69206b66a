"""Video renderer adapters."""

from reelflow.adapters.renderer.base import (
    RendererProvider,
    RenderRequest,
    RenderResult,
    RenderSegment,
)
from reelflow.adapters.renderer.stub import StubRendererProvider

__all__ = [
    "RenderRequest",
    "RenderResult",
    "RenderSegment",
    "RendererProvider",
    "StubRendererProvider",
]
