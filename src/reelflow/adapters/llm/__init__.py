"""LLM provider adapters."""

from reelflow.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from reelflow.adapters.llm.openai import OpenAIProvider
from reelflow.adapters.llm.stub import StubLLMProvider

__all__ = [
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "OpenAIProvider",
    "StubLLMProvider",
]
