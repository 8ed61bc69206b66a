"""ElevenLabs voiceover provider implementation."""

import httpx

from reelflow.adapters.http import safe_json
from reelflow.adapters.voiceover.base import VoiceoverProvider, VoiceoverRequest, VoiceoverResult
from reelflow.config import settings
from reelflow.errors import ProviderNotConfiguredError
from reelflow.logging import get_logger

logger = get_logger(__name__)


class ElevenLabsProvider(VoiceoverProvider):
    """ElevenLabs API provider for AI voiceovers."""

    # Friendly aliases for stock ElevenLabs voices
    DEFAULT_VOICES = {
        "narrator": "21m00Tcm4TlvDq8ikWAM",  # Rachel
        "dramatic": "29vD33N1CtxCmqQRPOHJ",  # Drew
        "energetic": "ErXwobaYiN019PkySvjV",  # Antoni
        "deep": "VR6AewLTigWG4xSOukaG",  # Arnold
    }

    def __init__(
        self,
        api_key: str | None = None,
        model_id: str = "eleven_multilingual_v2",
        base_url: str = "https://api.elevenlabs.io/v1",
    ) -> None:
        self.api_key = api_key or settings.elevenlabs_api_key
        self.model_id = model_id
        self.base_url = base_url

        if not self.api_key:
            logger.warning("elevenlabs_api_key_missing")

    @property
    def name(self) -> str:
        return "elevenlabs"

    def resolve_voice(self, voice_id: str | None) -> str:
        if not voice_id or voice_id == "default":
            return settings.elevenlabs_default_voice
        return self.DEFAULT_VOICES.get(voice_id, voice_id)

    async def generate(self, request: VoiceoverRequest) -> VoiceoverResult:
        """Generate voiceover using ElevenLabs API."""
        if not self.api_key:
            raise ProviderNotConfiguredError("ElevenLabs API key not configured")

        voice_id = self.resolve_voice(request.voice_id)

        payload: dict[str, object] = {
            "text": request.text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.75,
            },
        }
        if request.language != "en":
            payload["language_code"] = request.language

        logger.info(
            "elevenlabs_generation_started",
            text_length=len(request.text),
            voice_id=voice_id,
            model=self.model_id,
        )

        try:
            async with httpx.AsyncClient(timeout=120.0) as client:
                response = await client.post(
                    f"{self.base_url}/text-to-speech/{voice_id}",
                    headers={"xi-api-key": self.api_key, "Content-Type": "application/json"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error("elevenlabs_generation_error", error=str(e))
            return VoiceoverResult(success=False, error_message=str(e))

        if response.status_code != 200:
            error_msg = f"ElevenLabs API error: {response.status_code}"
            error_data = safe_json(response)
            if error_data:
                detail = error_data.get("detail")
                message = detail.get("message") if isinstance(detail, dict) else detail
                error_msg = f"{error_msg} - {message or error_data}"
            logger.error("elevenlabs_api_error", error=error_msg)
            return VoiceoverResult(success=False, error_message=error_msg)

        audio_data = response.content
        # Rough estimate: ~150 words per minute
        estimated_duration = len(request.text.split()) / 150 * 60

        logger.info(
            "elevenlabs_generation_completed",
            audio_size=len(audio_data),
            estimated_duration=estimated_duration,
        )

        return VoiceoverResult(
            success=True,
            audio_data=audio_data,
            duration_seconds=estimated_duration,
            metadata={"provider": self.name, "voice_id": voice_id, "model_id": self.model_id},
        )

    async def health_check(self) -> bool:
        """Check if ElevenLabs API is accessible."""
        if not self.api_key:
            return False
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(
                    f"{self.base_url}/user",
                    headers={"xi-api-key": self.api_key},
                )
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error("elevenlabs_health_check_failed", error=str(e))
            return False
