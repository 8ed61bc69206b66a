"""Stub LLM provider for testing."""

import json

from reelflow.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from reelflow.logging import get_logger

logger = get_logger(__name__)


class StubLLMProvider(LLMProvider):
    """Stub provider that returns canned responses shaped like the real prompts expect.

    The response kind is picked from the system message, which the content
    generator always sets to one of the known task prompts.
    """

    @property
    def name(self) -> str:
        return "stub"

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Return a canned completion."""
        logger.info(
            "stub_llm_complete",
            message_count=len(messages),
            json_mode=json_mode,
        )

        system = next((m.content for m in messages if m.role == "system"), "").lower()
        user_message = next((m.content for m in reversed(messages) if m.role == "user"), "")
        subject = user_message[:60]

        if json_mode:
            content = json.dumps(
                {
                    "title": f"{subject[:40]} | Watch till the end",
                    "description": f"Everything you need to know about {subject[:50]}.",
                    "hashtags": ["shorts", "viral", "learn"],
                }
            )
        elif "image generation" in system:
            content = "\n".join(
                f"Vertical cinematic shot {i + 1} illustrating the story, soft light"
                for i in range(4)
            )
        elif "hashtag" in system:
            content = "#shorts\n#viral\n#learnontiktok\n#didyouknow\n#facts"
        elif "topic" in system:
            content = "\n".join(
                f"{i + 1}. Surprising fact number {i + 1} about {subject[:40]}" for i in range(5)
            )
        else:
            content = (
                f"Did you know this about {subject}? It started as a small idea. "
                "Then it changed everything. Here is why it matters today!"
            )

        return LLMResponse(
            content=content,
            model="stub-model",
            usage={
                "prompt_tokens": len(user_message.split()),
                "completion_tokens": len(content.split()),
                "total_tokens": len(user_message.split()) + len(content.split()),
            },
            finish_reason="stop",
        )
