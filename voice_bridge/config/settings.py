"""
Environment-driven settings for the voice bridge.

Every knob the bridge exposes is read here from environment variables (a
``.env`` file is loaded by the application entry point), so the rest of the
code receives a plain ``BridgeSettings`` object instead of calling
``os.getenv`` directly.
"""

import os
from dataclasses import dataclass
from typing import Optional

from voice_bridge.config.constants import (
    BINARY_FRAMES_BUFFER,
    BINARY_FRAMES_DROP,
    DEFAULT_AUDIO_FORMAT,
    DEFAULT_BATCH_WINDOW_SECONDS,
    DEFAULT_BUSINESS_NAME,
    DEFAULT_CHAT_MODEL,
    DEFAULT_FLUSH_POLL_INTERVAL,
    DEFAULT_INFERENCE_TIMEOUT_SECONDS,
    DEFAULT_INPUT_SAMPLE_RATE,
    DEFAULT_LEDGER_DIR,
    DEFAULT_RECEPTIONIST_NAME,
    DEFAULT_TRANSCRIBE_MODEL,
    DEFAULT_VOICE,
    LEDGER_BACKEND_FILE,
    LEDGER_BACKEND_MEMORY,
    TURN_POLICY_FINALITY,
    TURN_POLICY_WINDOWED,
    WINDOW_ANCHOR_FIRST_FRAGMENT,
    WINDOW_ANCHOR_LAST_FLUSH,
)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def _env_choice(name: str, default: str, choices: tuple) -> str:
    value = os.getenv(name, default).strip().lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of {choices}, got {value!r}")
    return value


@dataclass
class BridgeSettings:
    """Runtime configuration for the bridge."""

    openai_api_key: Optional[str] = None
    chat_model: str = DEFAULT_CHAT_MODEL
    voice: str = DEFAULT_VOICE
    audio_format: str = DEFAULT_AUDIO_FORMAT
    transcribe_model: str = DEFAULT_TRANSCRIBE_MODEL
    temperature: float = 0.7

    turn_policy: str = TURN_POLICY_FINALITY
    batch_window_seconds: float = DEFAULT_BATCH_WINDOW_SECONDS
    window_anchor: str = WINDOW_ANCHOR_LAST_FLUSH
    flush_poll_interval: float = DEFAULT_FLUSH_POLL_INTERVAL
    flush_on_stop: bool = True
    binary_frame_policy: str = BINARY_FRAMES_BUFFER
    input_sample_rate: int = DEFAULT_INPUT_SAMPLE_RATE

    inference_timeout_seconds: float = DEFAULT_INFERENCE_TIMEOUT_SECONDS

    ledger_backend: str = LEDGER_BACKEND_FILE
    ledger_dir: str = DEFAULT_LEDGER_DIR

    receptionist_name: str = DEFAULT_RECEPTIONIST_NAME
    business_name: str = DEFAULT_BUSINESS_NAME
    public_host: Optional[str] = None

    @property
    def generation_params(self) -> dict:
        """Parameters passed through to the conversational backend."""
        return {
            "model": self.chat_model,
            "modalities": ["text", "audio"],
            "audio": {"voice": self.voice, "format": self.audio_format},
            "temperature": self.temperature,
        }

    @classmethod
    def from_env(cls) -> "BridgeSettings":
        """Build settings from the current process environment."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            chat_model=os.getenv("OPENAI_MODEL", DEFAULT_CHAT_MODEL),
            voice=os.getenv("OPENAI_VOICE", DEFAULT_VOICE),
            audio_format=os.getenv("OPENAI_AUDIO_FORMAT", DEFAULT_AUDIO_FORMAT),
            transcribe_model=os.getenv("OPENAI_TRANSCRIBE_MODEL", DEFAULT_TRANSCRIBE_MODEL),
            temperature=float(os.getenv("OPENAI_TEMPERATURE", "0.7")),
            turn_policy=_env_choice(
                "TURN_POLICY", TURN_POLICY_FINALITY,
                (TURN_POLICY_FINALITY, TURN_POLICY_WINDOWED),
            ),
            batch_window_seconds=float(
                os.getenv("BATCH_WINDOW_SECONDS", str(DEFAULT_BATCH_WINDOW_SECONDS))
            ),
            window_anchor=_env_choice(
                "WINDOW_ANCHOR", WINDOW_ANCHOR_LAST_FLUSH,
                (WINDOW_ANCHOR_LAST_FLUSH, WINDOW_ANCHOR_FIRST_FRAGMENT),
            ),
            flush_poll_interval=float(
                os.getenv("FLUSH_POLL_INTERVAL", str(DEFAULT_FLUSH_POLL_INTERVAL))
            ),
            flush_on_stop=_env_bool("FLUSH_ON_STOP", True),
            binary_frame_policy=_env_choice(
                "BINARY_FRAME_POLICY", BINARY_FRAMES_BUFFER,
                (BINARY_FRAMES_BUFFER, BINARY_FRAMES_DROP),
            ),
            input_sample_rate=int(
                os.getenv("INPUT_SAMPLE_RATE", str(DEFAULT_INPUT_SAMPLE_RATE))
            ),
            inference_timeout_seconds=float(
                os.getenv("INFERENCE_TIMEOUT_SECONDS", str(DEFAULT_INFERENCE_TIMEOUT_SECONDS))
            ),
            ledger_backend=_env_choice(
                "LEDGER_BACKEND", LEDGER_BACKEND_FILE,
                (LEDGER_BACKEND_FILE, LEDGER_BACKEND_MEMORY),
            ),
            ledger_dir=os.getenv("LEDGER_DIR", DEFAULT_LEDGER_DIR),
            receptionist_name=os.getenv("RECEPTIONIST_NAME", DEFAULT_RECEPTIONIST_NAME),
            business_name=os.getenv("BUSINESS_NAME", DEFAULT_BUSINESS_NAME),
            public_host=os.getenv("PUBLIC_HOST") or None,
        )
