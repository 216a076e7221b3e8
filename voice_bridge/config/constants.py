"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names, event kinds and defaults.
"""

# Logger name used throughout the application
LOGGER_NAME = "voice_bridge"

# Default OpenAI models
DEFAULT_CHAT_MODEL = "gpt-4o-audio-preview"
DEFAULT_TRANSCRIBE_MODEL = "whisper-1"
DEFAULT_VOICE = "alloy"
DEFAULT_AUDIO_FORMAT = "wav"

# Audio format of raw inbound fragments
AUDIO_FORMAT_RAW_LPCM16 = "raw/lpcm16"
DEFAULT_INPUT_SAMPLE_RATE = 16000

# Inbound event names
EVENT_START = "start"
EVENT_MEDIA = "media"
EVENT_USER_SPEECH = "user_speech"
EVENT_STOP = "stop"
EVENT_CALL_END = "call_end"

# Outbound event names
EVENT_ASSISTANT_AUDIO = "assistant_audio"
EVENT_ASSISTANT_TEXT = "assistant_text"

# Turn buffer policies
TURN_POLICY_WINDOWED = "windowed"
TURN_POLICY_FINALITY = "finality"
DEFAULT_BATCH_WINDOW_SECONDS = 1.2
WINDOW_ANCHOR_LAST_FLUSH = "last_flush"
WINDOW_ANCHOR_FIRST_FRAGMENT = "first_fragment"
DEFAULT_FLUSH_POLL_INTERVAL = 0.1

# Binary frame policies
BINARY_FRAMES_BUFFER = "buffer"
BINARY_FRAMES_DROP = "drop"

# Inference
DEFAULT_INFERENCE_TIMEOUT_SECONDS = 20.0
DEGRADED_REPLY_TEXT = (
    "I'm sorry, I'm having a little trouble hearing you right now. "
    "Could you say that again?"
)

# Persona
DEFAULT_RECEPTIONIST_NAME = "Jessica"
DEFAULT_BUSINESS_NAME = "our office"

# Emotion label used until the caller's emotion is detected
DEFAULT_EMOTION = "neutral"

# Ledger event kinds
LOG_WS_CONNECT = "ws_connect"
LOG_WS_CLOSE = "ws_close"
LOG_CALL_START = "call_start"
LOG_CALL_STOP = "call_stop"
LOG_MALFORMED_FRAME = "malformed_frame"
LOG_BINARY_DROPPED = "binary_frame_dropped"
LOG_UNKNOWN_EVENT = "unknown_event"
LOG_TURN_FLUSHED = "turn_flushed"
LOG_TRANSCRIPTION_FAILED = "transcription_failed"
LOG_INFERENCE_SUCCESS = "inference_success"
LOG_BACKEND_FAILURE = "backend_failure"
LOG_ASSISTANT_REPLY = "assistant_reply"
LOG_REPLY_DISCARDED = "reply_discarded"

# Ledger backends
LEDGER_BACKEND_FILE = "file"
LEDGER_BACKEND_MEMORY = "memory"
DEFAULT_LEDGER_DIR = "data"
