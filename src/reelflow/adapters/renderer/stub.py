"""Stub renderer provider for testing."""

import json
import tempfile
from pathlib import Path
from uuid import uuid4

from reelflow.adapters.renderer.base import RendererProvider, RenderRequest, RenderResult
from reelflow.logging import get_logger

logger = get_logger(__name__)


class StubRendererProvider(RendererProvider):
    """Stub provider that simulates rendering without external dependencies.

    Writes the render manifest to a temporary file and returns its file URL.
    """

    def __init__(self, output_dir: Path | None = None) -> None:
        self.output_dir = output_dir or Path(tempfile.gettempdir()) / "reelflow"

    @property
    def name(self) -> str:
        return "stub"

    async def render(self, request: RenderRequest) -> RenderResult:
        logger.info(
            "stub_render_started",
            segment_count=len(request.segments),
            template=request.template,
            resolution=request.resolution,
        )

        if not request.segments:
            return RenderResult(success=False, error_message="No segments to render")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"rendered_{uuid4().hex[:12]}.mp4"
        manifest = {
            "template": request.template,
            "audio_url": request.audio_url,
            "segments": [
                {"image_url": s.image_url, "start": s.start_time, "end": s.end_time}
                for s in request.segments
            ],
        }
        output_path.write_bytes(b"STUB_RENDERED\n" + json.dumps(manifest).encode())

        logger.info("stub_render_completed", output_path=str(output_path))

        return RenderResult(
            success=True,
            video_url=output_path.as_uri(),
            duration_seconds=request.total_duration,
            metadata={"provider": self.name, "resolution": request.resolution},
        )
