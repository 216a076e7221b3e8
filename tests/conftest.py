import asyncio
import logging
import os

import pytest

# keep the application's ledger in memory while the test suite imports it
os.environ.setdefault("LEDGER_BACKEND", "memory")


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class MockWebSocket:
    """A simple websocket mock that records sent messages."""

    def __init__(self, fail_sends: bool = False):
        self.sent_messages = []
        self.fail_sends = fail_sends

    async def send_text(self, text):
        if self.fail_sends:
            raise RuntimeError("socket closed")
        self.sent_messages.append(text)


class FakeBackend:
    """Inference backend returning a canned response, optionally held back."""

    def __init__(self, response=None, error=None, delay=0.0, gate=None):
        self.response = response if response is not None else chat_reply("Happy to help!")
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls = []
        self.started = asyncio.Event()
        self.active = 0
        self.max_active = 0

    async def complete(self, messages, params):
        self.calls.append(messages)
        self.started.set()
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return self.response
        finally:
            self.active -= 1


class FakeTranscriber:
    def __init__(self, text="hello there"):
        self.text = text
        self.received = []

    async def transcribe(self, audio):
        self.received.append(audio)
        return self.text


class ManualClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def chat_reply(text, audio=None):
    message = {"role": "assistant", "content": text}
    if audio is not None:
        message = {"role": "assistant", "content": None,
                   "audio": {"id": "audio_1", "data": audio, "transcript": text}}
    return {"id": "chatcmpl-1", "choices": [{"index": 0, "message": message}]}
