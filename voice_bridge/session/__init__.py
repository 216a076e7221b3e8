"""
Session module: per-call turn detection, orchestration and the session registry.

Key components:
- turn_buffer: windowed and finality-based turn detection.
- call_session: the per-call state machine and its single turn worker.
- registry: creation and release of sessions as connections open and close.
"""

from voice_bridge.session.call_session import CallSession
from voice_bridge.session.registry import SessionRegistry
from voice_bridge.session.turn_buffer import (
    AudioFragment,
    FinalityTurnBuffer,
    FlushDecision,
    TextFragment,
    Turn,
    TurnBuffer,
    WindowedTurnBuffer,
    create_turn_buffer,
)
