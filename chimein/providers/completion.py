"""Completion service used by every mode that talks to the LLM."""

import asyncio
from typing import Any

from loguru import logger

from chimein.errors import CompletionError
from chimein.providers.base import LLMProvider

Message = dict[str, Any]


class CompletionService:
    """Turns provider responses into plain text or a CompletionError.

    Transport errors, error finish reasons, timeouts and empty output are all
    reported the same way so callers only have one failure to handle.
    """

    def __init__(self, provider: LLMProvider, model: str | None = None, timeout_s: float = 30.0):
        self.provider = provider
        self.model = model or provider.get_default_model()
        self.timeout_s = timeout_s

    async def complete(
        self,
        messages: list[Message],
        max_tokens: int = 150,
        temperature: float = 0.7,
    ) -> str:
        try:
            response = await asyncio.wait_for(
                self.provider.chat(
                    messages=messages,
                    model=self.model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                ),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise CompletionError(f"completion timed out after {self.timeout_s}s") from e

        if response.is_error:
            raise CompletionError(response.content or "provider returned an error")

        text = (response.content or "").strip()
        if not text:
            raise CompletionError("provider returned an empty completion")

        logger.debug(f"Completion ok ({response.usage.get('total_tokens', '?')} tokens)")
        return text


class Conversation:
    """Rolling command conversation: a system prompt plus the last N exchanges."""

    def __init__(self, system_prompt: str, history_length: int = 5):
        self.system_prompt = system_prompt
        self.history_length = history_length
        self._history: list[Message] = []

    @property
    def history(self) -> list[Message]:
        return list(self._history)

    def messages_for(self, user_text: str) -> list[Message]:
        """Prompt for a new user turn without recording it."""
        return [
            {"role": "system", "content": self.system_prompt},
            *self._history,
            {"role": "user", "content": user_text},
        ]

    def record(self, user_text: str, reply: str) -> None:
        """Keep a completed exchange; failed turns are never recorded."""
        self._history.append({"role": "user", "content": user_text})
        self._history.append({"role": "assistant", "content": reply})
        excess = len(self._history) - self.history_length * 2
        if excess > 0:
            del self._history[:excess]

    async def ask(self, service: CompletionService, user_text: str) -> str:
        reply = await service.complete(self.messages_for(user_text))
        self.record(user_text, reply)
        return reply
