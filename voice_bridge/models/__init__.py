"""
Models module for the voice bridge.

Key components:
- call: the Call lifecycle record plus the MemoryEntry and LogEvent records
  persisted by the CallLedger.
- message_schemas: pydantic models validating inbound WebSocket frames and
  shaping outbound replies.

Usage examples:
```python
from voice_bridge.models.message_schemas import UserSpeechFrame

frame = UserSpeechFrame(event="user_speech", text="Hi there", isFinal=True)
```
"""

from voice_bridge.models.call import Call, CallState, LogEvent, MemoryEntry, Role
from voice_bridge.models.message_schemas import (
    AssistantAudioFrame,
    AssistantTextFrame,
    InboundFrame,
    MediaFrame,
    OutboundFrame,
    StartFrame,
    StopFrame,
    UserSpeechFrame,
)
