"""Stub voiceover provider for testing."""

from reelflow.adapters.voiceover.base import VoiceoverProvider, VoiceoverRequest, VoiceoverResult
from reelflow.logging import get_logger

logger = get_logger(__name__)

# Minimal MPEG frame header followed by padding; enough for storage round-trips
STUB_AUDIO = b"\xff\xfb\x90\x64" + b"\x00" * 412


class StubVoiceoverProvider(VoiceoverProvider):
    """Stub provider that returns silent audio."""

    @property
    def name(self) -> str:
        return "stub"

    async def generate(self, request: VoiceoverRequest) -> VoiceoverResult:
        word_count = len(request.text.split())
        logger.info(
            "stub_voiceover_generated",
            word_count=word_count,
            voice_id=request.voice_id,
        )
        return VoiceoverResult(
            success=True,
            audio_data=STUB_AUDIO,
            duration_seconds=word_count / 2.5,
            metadata={"provider": self.name, "voice_id": request.voice_id},
        )
