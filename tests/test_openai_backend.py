import io
import wave
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from voice_bridge.bot.openai_backend import OpenAIChatBackend, OpenAITranscriber, pcm16_to_wav


def test_missing_api_key():
    with pytest.raises(ValueError):
        OpenAIChatBackend(api_key=None)


def test_pcm16_to_wav():
    wav_bytes = pcm16_to_wav(b"\x00\x00\x01\x00", sample_rate=8000)
    with wave.open(io.BytesIO(wav_bytes), "rb") as wav_file:
        assert wav_file.getnchannels() == 1
        assert wav_file.getsampwidth() == 2
        assert wav_file.getframerate() == 8000
        assert wav_file.readframes(2) == b"\x00\x00\x01\x00"


@pytest.mark.asyncio
async def test_chat_backend_passes_params():
    response = MagicMock()
    response.model_dump.return_value = {"choices": []}
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response)
    backend = OpenAIChatBackend(client=client)

    messages = [{"role": "user", "content": "hi"}]
    result = await backend.complete(messages, {"model": "gpt-4o-audio-preview", "modalities": ["text", "audio"]})

    assert result == {"choices": []}
    client.chat.completions.create.assert_awaited_once_with(
        messages=messages, model="gpt-4o-audio-preview", modalities=["text", "audio"]
    )


@pytest.mark.asyncio
async def test_transcriber_sends_wav():
    client = MagicMock()
    client.audio.transcriptions.create = AsyncMock(return_value=SimpleNamespace(text="  book a slot "))
    transcriber = OpenAITranscriber(client=client, model="whisper-1")

    text = await transcriber.transcribe(b"\x00\x00" * 10)

    assert text == "book a slot"
    kwargs = client.audio.transcriptions.create.call_args.kwargs
    assert kwargs["model"] == "whisper-1"
    name, payload, content_type = kwargs["file"]
    assert name == "turn.wav" and content_type == "audio/wav"
    assert payload.startswith(b"RIFF")
