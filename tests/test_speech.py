"""Tests for speech synthesis output."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from chimein.providers.speech import SpeechSynthesizer


@pytest.fixture
def provider():
    p = MagicMock()
    p.speech = AsyncMock(return_value=b"ID3-audio")
    return p


class TestSynthesize:
    @pytest.mark.asyncio
    async def test_writes_clip(self, provider, tmp_path):
        out = tmp_path / "public" / "file.mp3"
        speech = SpeechSynthesizer(provider, out, voice="nova")

        assert await speech.synthesize("hello chat") == out
        assert out.read_bytes() == b"ID3-audio"
        assert list(out.parent.iterdir()) == [out]
        provider.speech.assert_awaited_once_with("hello chat", model="tts-1", voice="nova")

    @pytest.mark.asyncio
    async def test_failed_replace_leaves_no_temp_file(self, provider, tmp_path):
        out = tmp_path / "file.mp3"
        out.mkdir()  # replacing a directory with a file fails
        speech = SpeechSynthesizer(provider, out)

        with pytest.raises(OSError):
            await speech.synthesize("hello chat")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["file.mp3"]
