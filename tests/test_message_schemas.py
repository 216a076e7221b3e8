import base64

import pytest
from pydantic import ValidationError

from voice_bridge.models.message_schemas import (
    FRAME_MODELS,
    AssistantAudioFrame,
    AssistantTextFrame,
    MediaFrame,
    StartFrame,
    StopFrame,
    UserSpeechFrame,
)


def test_start_frame_keeps_provider_metadata():
    frame = StartFrame(event="start", start={"callSid": "CA123"}, streamSid="MZ1")
    assert frame.start == {"callSid": "CA123"}


def test_stop_and_call_end_share_a_model():
    assert FRAME_MODELS["stop"] is FRAME_MODELS["call_end"] is StopFrame
    assert StopFrame(event="call_end").event == "call_end"


def test_media_frame_nested_payload():
    encoded = base64.b64encode(b"\x00\x01").decode()
    frame = MediaFrame.model_validate({"event": "media", "media": {"payload": encoded}})
    assert frame.media.audio == b"\x00\x01"


def test_media_frame_flat_payload():
    encoded = base64.b64encode(b"abc").decode()
    frame = MediaFrame.model_validate({"event": "media", "payload": encoded})
    assert frame.media.audio == b"abc"


def test_media_frame_transcript_fragment():
    frame = MediaFrame.model_validate(
        {"event": "media", "media": {"text": "book a", "isFinal": False}}
    )
    assert frame.media.audio is None
    assert frame.media.text == "book a"
    assert frame.media.is_final is False


def test_media_frame_rejects_bad_base64():
    with pytest.raises(ValidationError):
        MediaFrame.model_validate({"event": "media", "media": {"payload": "not base64!!"}})


def test_media_frame_requires_content():
    with pytest.raises(ValidationError):
        MediaFrame.model_validate({"event": "media", "media": {}})


def test_user_speech_defaults():
    frame = UserSpeechFrame.model_validate({"event": "user_speech", "text": "hello"})
    assert frame.is_final is True
    assert frame.emotion is None


def test_user_speech_requires_text():
    with pytest.raises(ValidationError):
        UserSpeechFrame.model_validate({"event": "user_speech", "isFinal": True})


def test_outbound_frames():
    assert AssistantAudioFrame(audio="UklGRg==").model_dump() == {
        "event": "assistant_audio", "audio": "UklGRg=="
    }
    assert AssistantTextFrame(text="Hi").model_dump() == {"event": "assistant_text", "text": "Hi"}
