"""
Turn detection for a single call.

A TurnBuffer accumulates caller input and decides when it adds up to one
complete user turn. Two policies are available:

- ``windowed``: raw audio (and final transcript fragments) are batched and
  flushed once the batching window since the previous flush has elapsed.
- ``finality``: pre-transcribed text is flushed as soon as a fragment marked
  final arrives; partial fragments only update the running partial view.
  Raw audio with no transcript falls back to the batching window.

Buffers are driven from one event loop and do no locking of their own.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from voice_bridge.config.constants import (
    DEFAULT_BATCH_WINDOW_SECONDS,
    DEFAULT_EMOTION,
    TURN_POLICY_FINALITY,
    TURN_POLICY_WINDOWED,
)

Clock = Callable[[], float]


@dataclass(frozen=True)
class AudioFragment:
    """Raw caller audio."""
    data: bytes


@dataclass(frozen=True)
class TextFragment:
    """Transcribed caller speech."""
    text: str
    is_final: bool = True
    emotion: Optional[str] = None


Fragment = Union[AudioFragment, TextFragment]


@dataclass(frozen=True)
class Turn:
    """One complete unit of caller input, as flushed by a TurnBuffer."""

    fragments: tuple
    emotion: str = DEFAULT_EMOTION
    trigger: str = "final"

    @property
    def audio(self) -> bytes:
        return b"".join(f.data for f in self.fragments if isinstance(f, AudioFragment))

    @property
    def text(self) -> str:
        parts = (f.text.strip() for f in self.fragments if isinstance(f, TextFragment))
        return " ".join(p for p in parts if p)

    @property
    def has_audio(self) -> bool:
        return any(isinstance(f, AudioFragment) for f in self.fragments)


@dataclass(frozen=True)
class FlushDecision:
    """Result of feeding a TurnBuffer: either nothing, or a flushed turn."""

    turn: Optional[Turn] = None

    @property
    def flushed(self) -> bool:
        return self.turn is not None


NO_FLUSH = FlushDecision()


@dataclass
class TurnState:
    """Mutable per-call accumulator."""

    pending: List[Fragment] = field(default_factory=list)
    last_flush: float = 0.0
    first_pending: Optional[float] = None
    emotion: str = DEFAULT_EMOTION
    partial_text: str = ""


class TurnBuffer:
    """Base class holding the shared TurnState bookkeeping."""

    policy = ""

    def __init__(self, window_seconds: float = DEFAULT_BATCH_WINDOW_SECONDS,
                 clock: Clock = time.monotonic):
        self._clock = clock
        self.window_seconds = window_seconds
        self.state = TurnState(last_flush=clock())

    @property
    def emotion(self) -> str:
        return self.state.emotion

    @property
    def partial_text(self) -> str:
        return self.state.partial_text

    @property
    def has_pending(self) -> bool:
        return bool(self.state.pending)

    def push(self, fragment: Fragment, now: Optional[float] = None) -> FlushDecision:
        raise NotImplementedError

    def poll(self, now: Optional[float] = None) -> FlushDecision:
        """Re-evaluate time-based flushing when no fragment arrived."""
        return NO_FLUSH

    def drain(self) -> FlushDecision:
        """Flush whatever is pending regardless of policy."""
        if not self.state.pending:
            return NO_FLUSH
        return self._flush(self._clock(), trigger="drain")

    def _note_emotion(self, fragment: Fragment) -> None:
        if isinstance(fragment, TextFragment) and fragment.emotion:
            self.state.emotion = fragment.emotion.strip().lower() or self.state.emotion

    def _append(self, fragment: Fragment, now: float) -> None:
        if not self.state.pending:
            self.state.first_pending = now
        self.state.pending.append(fragment)

    def _flush(self, now: float, trigger: str) -> FlushDecision:
        turn = Turn(
            fragments=tuple(self.state.pending),
            emotion=self.state.emotion,
            trigger=trigger,
        )
        self.state.pending = []
        self.state.first_pending = None
        self.state.partial_text = ""
        self.state.last_flush = now
        return FlushDecision(turn=turn)


class WindowedTurnBuffer(TurnBuffer):
    """
    Flush accumulated fragments once the batching window has elapsed.

    By default the window is measured from the previous flush (or from the
    start of the call). With ``anchor_first_fragment`` it is measured from the
    first fragment buffered after that flush instead, so the first chunk
    after a long silence waits for the rest of the utterance.
    """

    policy = TURN_POLICY_WINDOWED

    def __init__(self, window_seconds: float = DEFAULT_BATCH_WINDOW_SECONDS,
                 clock: Clock = time.monotonic, anchor_first_fragment: bool = False):
        super().__init__(window_seconds, clock)
        self.anchor_first_fragment = anchor_first_fragment

    def push(self, fragment: Fragment, now: Optional[float] = None) -> FlushDecision:
        now = self._clock() if now is None else now
        self._note_emotion(fragment)
        if isinstance(fragment, TextFragment) and not fragment.is_final:
            self.state.partial_text = fragment.text
            return NO_FLUSH
        self._append(fragment, now)
        return self.poll(now)

    def poll(self, now: Optional[float] = None) -> FlushDecision:
        now = self._clock() if now is None else now
        if not self.state.pending:
            return NO_FLUSH
        if self.anchor_first_fragment:
            started = self.state.first_pending
        else:
            started = self.state.last_flush
        if now - started > self.window_seconds:
            return self._flush(now, trigger="window")
        return NO_FLUSH


class FinalityTurnBuffer(TurnBuffer):
    """
    Flush when a fragment marked final arrives.

    Audio buffered ahead of a final transcript is flushed with it. Audio that
    no transcript follows is flushed on its own once the batching window has
    elapsed since the first buffered chunk, so an audio-only stream still
    produces turns and never accumulates for the whole call.
    """

    policy = TURN_POLICY_FINALITY

    def push(self, fragment: Fragment, now: Optional[float] = None) -> FlushDecision:
        now = self._clock() if now is None else now
        self._note_emotion(fragment)
        if isinstance(fragment, AudioFragment):
            self._append(fragment, now)
            return self.poll(now)
        if not fragment.is_final:
            self.state.partial_text = fragment.text
            return NO_FLUSH
        self._append(fragment, now)
        return self._flush(now, trigger="final")

    def poll(self, now: Optional[float] = None) -> FlushDecision:
        now = self._clock() if now is None else now
        # only audio can be pending here; a final fragment flushes at once
        if self.state.pending and now - self.state.first_pending > self.window_seconds:
            return self._flush(now, trigger="audio_timeout")
        return NO_FLUSH


def create_turn_buffer(policy: str, window_seconds: float = DEFAULT_BATCH_WINDOW_SECONDS,
                       clock: Clock = time.monotonic,
                       anchor_first_fragment: bool = False) -> TurnBuffer:
    """Build the TurnBuffer for a configured policy name."""
    if policy == TURN_POLICY_WINDOWED:
        return WindowedTurnBuffer(window_seconds, clock=clock,
                                  anchor_first_fragment=anchor_first_fragment)
    if policy == TURN_POLICY_FINALITY:
        return FinalityTurnBuffer(window_seconds, clock=clock)
    raise ValueError(f"Unknown turn policy: {policy}")
