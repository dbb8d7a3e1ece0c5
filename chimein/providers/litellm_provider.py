"""LiteLLM provider implementation for multi-provider support."""

from typing import Any

import litellm
from litellm import acompletion

from chimein.providers.base import LLMProvider, LLMResponse


class LiteLLMProvider(LLMProvider):
    """
    LLM provider using LiteLLM for multi-provider support.

    Any model string LiteLLM understands works here ("gpt-3.5-turbo",
    "anthropic/claude-3-haiku-20240307", "ollama/llama3", ...).
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gpt-3.5-turbo",
        extra_headers: dict[str, str] | None = None,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.extra_headers = extra_headers or {}

        # Disable LiteLLM logging noise
        litellm.suppress_debug_info = True
        # Drop unsupported parameters for providers
        litellm.drop_params = True

    def _build_kwargs(self, model: str) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"model": model}
        # Pass api_key directly, more reliable than env vars alone
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.extra_headers:
            kwargs["extra_headers"] = self.extra_headers
        return kwargs

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        Send a chat completion request via LiteLLM.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model identifier (e.g., 'gpt-3.5-turbo').
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse; errors come back with finish_reason "error".
        """
        kwargs = self._build_kwargs(model or self.default_model)
        kwargs.update(messages=messages, max_tokens=max_tokens, temperature=temperature)

        try:
            response = await acompletion(**kwargs)
            return self._parse_response(response)
        except Exception as e:
            # Return error as content for graceful handling
            return LLMResponse(
                content=f"Error calling LLM: {str(e)}",
                finish_reason="error",
            )

    async def speech(self, text: str, model: str, voice: str) -> bytes:
        """Synthesize ``text`` and return the encoded audio bytes."""
        kwargs = self._build_kwargs(model)
        kwargs.update(input=text, voice=voice)
        response = await litellm.aspeech(**kwargs)
        return response.content

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse LiteLLM response into our standard format."""
        choice = response.choices[0]
        message = choice.message

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        """Get the default model."""
        return self.default_model
