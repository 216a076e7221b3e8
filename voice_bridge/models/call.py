"""
Per-call records: the Call itself, its conversation memory and its event log.

MemoryEntry and LogEvent are what the CallLedger persists; Call is the
in-process lifecycle record owned by the SessionRegistry.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(UTC)


class CallState(str, Enum):
    """Lifecycle state of a call."""
    CONNECTING = "connecting"
    ACTIVE = "active"
    ENDED = "ended"


class Role(str, Enum):
    """Role of a participant in a conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Call(BaseModel):
    """A single telephony session handled by the bridge."""

    call_id: str = Field(..., description="Provider-supplied or generated identifier")
    created_at: datetime = Field(default_factory=utc_now)
    state: CallState = CallState.CONNECTING


class MemoryEntry(BaseModel):
    """One message of the conversation memory."""

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utc_now)

    def as_prompt_message(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class LogEvent(BaseModel):
    """Append-only audit record for a call."""

    kind: str = Field(..., description="Event kind tag, e.g. 'ws_connect'")
    timestamp: datetime = Field(default_factory=utc_now)
    payload: Dict[str, Any] = Field(default_factory=dict)


def prompt_messages(entries: List[MemoryEntry]) -> List[Dict[str, str]]:
    """Convert memory entries to role/content dicts, preserving order."""
    return [entry.as_prompt_message() for entry in entries]
