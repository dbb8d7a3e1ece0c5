"""Text-to-speech for command replies."""

import asyncio
import os
from pathlib import Path

from loguru import logger

from chimein.providers.litellm_provider import LiteLLMProvider


class SpeechSynthesizer:
    """Writes the spoken version of a reply to a single mp3 file.

    The file is replaced atomically so a reader never sees a half-written
    clip.
    """

    def __init__(self, provider: LiteLLMProvider, output_path: str | Path,
                 model: str = "tts-1", voice: str = "alloy"):
        self.provider = provider
        self.output_path = Path(output_path).expanduser()
        self.model = model
        self.voice = voice

    def _write(self, audio: bytes) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.output_path.with_suffix(self.output_path.suffix + ".tmp")
        try:
            tmp.write_bytes(audio)
            os.replace(tmp, self.output_path)
        finally:
            tmp.unlink(missing_ok=True)

    async def synthesize(self, text: str) -> Path:
        audio = await self.provider.speech(text, model=self.model, voice=self.voice)
        await asyncio.to_thread(self._write, audio)
        logger.info(f"Speech written to {self.output_path} ({len(audio)} bytes)")
        return self.output_path
