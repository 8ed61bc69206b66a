"""Voiceover provider adapters."""

from reelflow.adapters.voiceover.base import VoiceoverProvider, VoiceoverRequest, VoiceoverResult
from reelflow.adapters.voiceover.elevenlabs import ElevenLabsProvider
from reelflow.adapters.voiceover.stub import StubVoiceoverProvider

__all__ = [
    "ElevenLabsProvider",
    "StubVoiceoverProvider",
    "VoiceoverProvider",
    "VoiceoverRequest",
    "VoiceoverResult",
]
