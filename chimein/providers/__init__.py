"""LLM provider abstraction module."""

from chimein.providers.base import LLMProvider, LLMResponse
from chimein.providers.completion import CompletionService, Conversation
from chimein.providers.litellm_provider import LiteLLMProvider

__all__ = ["LLMProvider", "LLMResponse", "LiteLLMProvider", "CompletionService", "Conversation"]
