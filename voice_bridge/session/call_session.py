"""
Per-call orchestration.

A CallSession owns one telephony connection. Frames are handled in arrival
order: each is validated, turned into a fragment and pushed into the call's
TurnBuffer. Completed turns go onto a queue drained by a single worker task,
so at most one inference request per call is outstanding and turns resolve
in the order they were flushed, while frame handling carries on meanwhile.

State machine: connecting -> active -> ended.
"""

import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import WebSocket
from pydantic import ValidationError

from voice_bridge.bot.inference_gateway import GatewayResult, InferenceGateway
from voice_bridge.bot.intent_classifier import IntentClassifier, KeywordIntentClassifier
from voice_bridge.bot.prompts import build_system_prompt
from voice_bridge.bot.tone_selector import tone_for
from voice_bridge.config.constants import (
    BINARY_FRAMES_DROP,
    LOG_ASSISTANT_REPLY,
    LOG_BINARY_DROPPED,
    LOG_CALL_START,
    LOG_CALL_STOP,
    LOG_MALFORMED_FRAME,
    LOG_REPLY_DISCARDED,
    LOG_TRANSCRIPTION_FAILED,
    LOG_TURN_FLUSHED,
    LOG_UNKNOWN_EVENT,
    LOGGER_NAME,
    WINDOW_ANCHOR_FIRST_FRAGMENT,
)
from voice_bridge.config.settings import BridgeSettings
from voice_bridge.models.call import Call, CallState, MemoryEntry, Role
from voice_bridge.models.message_schemas import (
    FRAME_MODELS,
    AssistantAudioFrame,
    AssistantTextFrame,
    MediaFrame,
    StartFrame,
    StopFrame,
    UserSpeechFrame,
)
from voice_bridge.session.turn_buffer import (
    AudioFragment,
    Clock,
    Fragment,
    TextFragment,
    Turn,
    create_turn_buffer,
)
from voice_bridge.storage.ledger import CallLedger, record_event

logger = logging.getLogger(LOGGER_NAME)

FrameHandler = Callable[[Any], Awaitable[None]]


class CallSession:
    """Handles one call's frames, turns and replies."""

    def __init__(
        self,
        call: Call,
        connection: WebSocket,
        ledger: CallLedger,
        gateway: InferenceGateway,
        settings: BridgeSettings,
        classifier: Optional[IntentClassifier] = None,
        transcriber=None,
        clock: Clock = time.monotonic,
    ):
        self.call = call
        self.connection = connection
        self.ledger = ledger
        self.gateway = gateway
        self.settings = settings
        self.classifier = classifier or KeywordIntentClassifier()
        self.transcriber = transcriber
        self.buffer = create_turn_buffer(
            settings.turn_policy,
            settings.batch_window_seconds,
            clock=clock,
            anchor_first_fragment=settings.window_anchor == WINDOW_ANCHOR_FIRST_FRAGMENT,
        )
        self.memory: List[MemoryEntry] = []
        self.connection_open = True
        self.worker: Optional[asyncio.Task] = None
        self._ticker: Optional[asyncio.Task] = None
        self._turns: "asyncio.Queue[Optional[Turn]]" = asyncio.Queue()

        self.handlers: Dict[str, FrameHandler] = {
            "start": self._handle_start,
            "media": self._handle_media,
            "user_speech": self._handle_user_speech,
            "stop": self._handle_stop,
            "call_end": self._handle_stop,
        }

    @property
    def call_id(self) -> str:
        return self.call.call_id

    @property
    def state(self) -> CallState:
        return self.call.state

    @property
    def pending_turns(self) -> int:
        return self._turns.qsize()

    async def start(self) -> None:
        """Load any stored memory for this call and start the background tasks."""
        try:
            self.memory = await self.ledger.get_memory(self.call_id)
        except Exception as e:
            logger.error(f"Could not load memory for call {self.call_id}: {e}")
            self.memory = []
        self.worker = asyncio.create_task(self._run_turns(), name=f"turns-{self.call_id}")
        self._ticker = asyncio.create_task(self._poll_window(), name=f"window-{self.call_id}")

    # ------------------------------------------------------------------
    # Inbound frames
    # ------------------------------------------------------------------

    async def handle_text(self, raw: str) -> None:
        """Validate a JSON text frame and route it to its handler."""
        if self.state == CallState.ENDED:
            logger.debug(f"Ignoring frame for ended call {self.call_id}")
            return
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            await self._malformed(f"Invalid JSON: {e}")
            return
        if not isinstance(data, dict):
            await self._malformed(f"Expected a JSON object, got {type(data).__name__}")
            return

        event = data.get("event")
        if not isinstance(event, str):
            await self._malformed(f"Missing or non-string event field: {event!r}")
            return
        model = FRAME_MODELS.get(event)
        if model is None:
            logger.warning(f"Unknown event received for call {self.call_id}: {event}")
            await record_event(self.ledger, self.call_id, LOG_UNKNOWN_EVENT, {"event": event})
            return
        try:
            frame = model.model_validate(data)
        except ValidationError as e:
            await self._malformed(f"Invalid {event} frame: {e.error_count()} validation error(s)",
                                  event=event)
            return
        await self.handlers[event](frame)

    async def handle_bytes(self, data: bytes) -> None:
        """Handle a binary frame according to the binary frame policy."""
        if self.state == CallState.ENDED:
            return
        if self.settings.binary_frame_policy == BINARY_FRAMES_DROP:
            logger.debug(f"Dropping {len(data)} byte binary frame for call {self.call_id}")
            await record_event(self.ledger, self.call_id, LOG_BINARY_DROPPED, {"bytes": len(data)})
            return
        self._activate()
        await self._push(AudioFragment(data))

    async def _handle_start(self, frame: StartFrame) -> None:
        self._activate()
        logger.info(f"Call started: {self.call_id}")
        await record_event(self.ledger, self.call_id, LOG_CALL_START, {"start": frame.start or {}})

    async def _handle_media(self, frame: MediaFrame) -> None:
        self._activate()
        media = frame.media
        if media.payload is not None:
            await self._push(AudioFragment(media.audio))
        else:
            await self._push(TextFragment(media.text, is_final=media.is_final))

    async def _handle_user_speech(self, frame: UserSpeechFrame) -> None:
        self._activate()
        logger.info(f"Caller speech on {self.call_id} (final={frame.is_final}): {frame.text}")
        await self._push(TextFragment(frame.text, is_final=frame.is_final, emotion=frame.emotion))

    async def _handle_stop(self, frame: StopFrame) -> None:
        await self.end(reason=frame.event)

    async def _malformed(self, detail: str, event: Optional[str] = None) -> None:
        logger.warning(f"Dropping malformed frame for call {self.call_id}: {detail}")
        payload = {"detail": detail}
        if event:
            payload["event"] = event
        await record_event(self.ledger, self.call_id, LOG_MALFORMED_FRAME, payload)

    def _activate(self) -> None:
        if self.call.state == CallState.CONNECTING:
            self.call.state = CallState.ACTIVE
            logger.info(f"Call {self.call_id} is active")

    # ------------------------------------------------------------------
    # Turn detection
    # ------------------------------------------------------------------

    async def _push(self, fragment: Fragment) -> None:
        decision = self.buffer.push(fragment)
        if decision.flushed:
            await self._queue_turn(decision.turn)

    async def _queue_turn(self, turn: Turn) -> None:
        # enqueue before any await so turns keep their flush order
        self._turns.put_nowait(turn)
        await record_event(self.ledger, self.call_id, LOG_TURN_FLUSHED, {
            "trigger": turn.trigger,
            "fragments": len(turn.fragments),
            "audio_bytes": len(turn.audio),
            "text": turn.text,
            "emotion": turn.emotion,
        })

    async def _poll_window(self) -> None:
        while True:
            await asyncio.sleep(self.settings.flush_poll_interval)
            decision = self.buffer.poll()
            if decision.flushed:
                await self._queue_turn(decision.turn)

    # ------------------------------------------------------------------
    # Turn resolution
    # ------------------------------------------------------------------

    async def _run_turns(self) -> None:
        while True:
            turn = await self._turns.get()
            try:
                if turn is None:
                    return
                await self._process_turn(turn)
            except Exception as e:
                logger.error(f"Error processing turn for call {self.call_id}: {e}", exc_info=True)
            finally:
                self._turns.task_done()

    async def _process_turn(self, turn: Turn) -> None:
        text = await self._resolve_text(turn)
        if not text:
            return

        snapshot = list(self.memory)
        intent = self.classifier.classify(text)
        tone = tone_for(turn.emotion)
        system_prompt = build_system_prompt(
            self.settings.receptionist_name, self.settings.business_name, intent, tone
        )
        logger.info(f"Turn for call {self.call_id}: intent={intent}, emotion={turn.emotion}")

        self.memory.append(MemoryEntry(role=Role.USER, content=text))
        await self._persist_memory()

        result = await self.gateway.respond(self.call_id, system_prompt, snapshot, text)

        self.memory.append(MemoryEntry(role=Role.ASSISTANT, content=result.assistant_text))
        await self._persist_memory()

        delivered = await self._send_reply(result)
        await record_event(self.ledger, self.call_id, LOG_ASSISTANT_REPLY, {
            "intent": intent,
            "emotion": turn.emotion,
            "text": result.assistant_text,
            "has_audio": result.assistant_audio is not None,
            "degraded": result.degraded,
            "strategy": result.strategy,
            "delivered": delivered,
        })

    async def _resolve_text(self, turn: Turn) -> str:
        if turn.text:
            return turn.text
        if not turn.has_audio:
            return ""
        if self.transcriber is None:
            await record_event(self.ledger, self.call_id, LOG_TRANSCRIPTION_FAILED,
                               {"cause": "no transcriber configured"})
            return ""
        try:
            return await asyncio.wait_for(
                self.transcriber.transcribe(turn.audio),
                timeout=self.settings.inference_timeout_seconds,
            )
        except Exception as e:
            logger.error(f"Transcription failed for call {self.call_id}: {e}")
            await record_event(self.ledger, self.call_id, LOG_TRANSCRIPTION_FAILED,
                               {"cause": f"{type(e).__name__}: {e}"})
            return ""

    async def _persist_memory(self) -> None:
        try:
            await self.ledger.replace_memory(self.call_id, list(self.memory))
        except Exception as e:
            logger.error(f"Could not persist memory for call {self.call_id}: {e}")

    async def _send_reply(self, result: GatewayResult) -> bool:
        if not self.connection_open:
            logger.info(f"Connection closed for call {self.call_id}, reply not sent")
            await record_event(self.ledger, self.call_id, LOG_REPLY_DISCARDED,
                               {"reason": "connection closed"})
            return False
        if result.assistant_audio:
            frame = AssistantAudioFrame(audio=result.assistant_audio)
        else:
            frame = AssistantTextFrame(text=result.assistant_text)
        try:
            await self.connection.send_text(frame.model_dump_json())
            return True
        except Exception as e:
            logger.warning(f"Send failed for call {self.call_id}: {e}")
            self.connection_open = False
            await record_event(self.ledger, self.call_id, LOG_REPLY_DISCARDED,
                               {"reason": f"send failed: {type(e).__name__}"})
            return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def detach(self) -> None:
        """Mark the connection closed; later replies are logged, not sent."""
        self.connection_open = False

    async def end(self, reason: str) -> None:
        """Move to ended; optionally flush the pending turn and let queued turns finish."""
        if self.call.state == CallState.ENDED:
            return
        self.call.state = CallState.ENDED
        if self._ticker is not None:
            self._ticker.cancel()
            await asyncio.gather(self._ticker, return_exceptions=True)

        drained = False
        if self.settings.flush_on_stop:
            decision = self.buffer.drain()
            if decision.flushed:
                drained = True
                await self._queue_turn(decision.turn)
        # the worker stops after the queued turns
        self._turns.put_nowait(None)

        logger.info(f"Call ended: {self.call_id} ({reason})")
        await record_event(self.ledger, self.call_id, LOG_CALL_STOP, {
            "reason": reason,
            "drained_turn": drained,
            "discarded_fragments": len(self.buffer.state.pending),
        })

    async def wait_for_turns(self) -> None:
        """Wait until every queued turn has been resolved."""
        await self._turns.join()
