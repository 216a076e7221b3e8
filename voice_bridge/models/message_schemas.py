"""
Pydantic models for the bridge's WebSocket frame protocol.

Inbound frames are JSON objects with an ``event`` field (``start``, ``media``,
``user_speech``, ``stop``, ``call_end``); outbound frames carry either the
synthesized audio or, when no audio was produced for the turn, the reply text.
"""

import base64
import binascii
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BaseFrame(BaseModel):
    """Base model for all inbound frames."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    event: str = Field(..., description="Event kind identifier")


class StartFrame(BaseFrame):
    """Model for the start frame sent when the call begins."""

    event: Literal["start"]
    start: Optional[Dict[str, Any]] = Field(None, description="Provider call metadata")


class StopFrame(BaseFrame):
    """Model for stop / call_end frames."""

    event: Literal["stop", "call_end"]


class MediaPayload(BaseModel):
    """Body of a media frame: base64 audio or a transcript fragment."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    payload: Optional[str] = Field(None, description="Base64-encoded audio data")
    text: Optional[str] = Field(None, description="Transcript fragment")
    is_final: bool = Field(True, alias="isFinal")

    @field_validator("payload")
    def validate_payload(cls, v):
        """Validate that the audio payload is valid base64."""
        if v is None:
            return v
        if not v:
            raise ValueError("Audio payload cannot be empty")
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Invalid base64 encoded audio data")
        return v

    @model_validator(mode="after")
    def require_content(self):
        if self.payload is None and not self.text:
            raise ValueError("Media frame needs an audio payload or a text fragment")
        return self

    @property
    def audio(self) -> Optional[bytes]:
        return base64.b64decode(self.payload) if self.payload else None


class MediaFrame(BaseFrame):
    """Model for media frames; accepts nested ``media`` or a flat ``payload``."""

    event: Literal["media"]
    media: MediaPayload

    @model_validator(mode="before")
    @classmethod
    def lift_flat_payload(cls, data):
        if isinstance(data, dict) and "media" not in data:
            flat = {k: data[k] for k in ("payload", "text", "isFinal") if k in data}
            if flat:
                data = {**data, "media": flat}
        return data


class UserSpeechFrame(BaseFrame):
    """Model for pre-transcribed caller speech."""

    event: Literal["user_speech"]
    text: str = Field(..., description="Transcribed caller speech")
    is_final: bool = Field(True, alias="isFinal")
    emotion: Optional[str] = Field(None, description="Detected caller emotion")


InboundFrame = Union[StartFrame, StopFrame, MediaFrame, UserSpeechFrame]

FRAME_MODELS = {
    "start": StartFrame,
    "stop": StopFrame,
    "call_end": StopFrame,
    "media": MediaFrame,
    "user_speech": UserSpeechFrame,
}


# Outbound frames
class AssistantAudioFrame(BaseModel):
    """Model for the synthesized audio reply."""

    event: Literal["assistant_audio"] = "assistant_audio"
    audio: str = Field(..., description="Base64-encoded audio")


class AssistantTextFrame(BaseModel):
    """Model for a text reply, used when no audio was produced."""

    event: Literal["assistant_text"] = "assistant_text"
    text: str


OutboundFrame = Union[AssistantAudioFrame, AssistantTextFrame]
