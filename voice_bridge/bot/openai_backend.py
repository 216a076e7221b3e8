"""
OpenAI collaborators: the conversational backend and the audio transcriber.

Both wrap ``openai.AsyncOpenAI`` so calls suspend on the event loop instead of
blocking other calls.
"""

import io
import logging
import wave
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from voice_bridge.config.constants import (
    DEFAULT_INPUT_SAMPLE_RATE,
    DEFAULT_TRANSCRIBE_MODEL,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)


def _require_key(api_key: Optional[str]) -> str:
    if not api_key:
        logger.error("OPENAI_API_KEY environment variable not set")
        raise ValueError("OPENAI_API_KEY environment variable not set")
    return api_key


class OpenAIChatBackend:
    """Chat completions with spoken (audio) output."""

    def __init__(self, api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        self.client = client or AsyncOpenAI(api_key=_require_key(api_key))

    async def complete(self, messages: List[Dict[str, str]], params: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.chat.completions.create(messages=messages, **params)
        return response.model_dump()


def pcm16_to_wav(audio: bytes, sample_rate: int = DEFAULT_INPUT_SAMPLE_RATE) -> bytes:
    """Wrap mono 16-bit PCM in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(audio)
    return buffer.getvalue()


class OpenAITranscriber:
    """Speech-to-text for buffered raw/lpcm16 caller audio."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_TRANSCRIBE_MODEL,
        sample_rate: int = DEFAULT_INPUT_SAMPLE_RATE,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.client = client or AsyncOpenAI(api_key=_require_key(api_key))
        self.model = model
        self.sample_rate = sample_rate

    async def transcribe(self, audio: bytes) -> str:
        wav_bytes = pcm16_to_wav(audio, self.sample_rate)
        result = await self.client.audio.transcriptions.create(
            model=self.model,
            file=("turn.wav", wav_bytes, "audio/wav"),
        )
        text = getattr(result, "text", "") or ""
        logger.debug(f"Transcribed {len(audio)} bytes of audio into {len(text)} characters")
        return text.strip()
