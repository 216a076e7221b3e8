"""
Registry of live call sessions.

The SessionRegistry owns the mapping from call id to CallSession: a session is
created and registered when a connection opens and released when it closes.
Ledger records outlive the session.
"""

import asyncio
import logging
import time
import uuid
from typing import Dict, Optional

from fastapi import WebSocket

from voice_bridge.bot.inference_gateway import InferenceGateway
from voice_bridge.bot.intent_classifier import IntentClassifier
from voice_bridge.config.constants import LOG_WS_CLOSE, LOG_WS_CONNECT, LOGGER_NAME
from voice_bridge.config.settings import BridgeSettings
from voice_bridge.models.call import Call
from voice_bridge.session.call_session import CallSession
from voice_bridge.session.turn_buffer import Clock
from voice_bridge.storage.ledger import SAFE_CALL_ID, CallLedger, record_event

logger = logging.getLogger(LOGGER_NAME)


class SessionRegistry:
    """Creates, tracks and releases CallSessions."""

    def __init__(
        self,
        ledger: CallLedger,
        gateway: InferenceGateway,
        settings: BridgeSettings,
        classifier: Optional[IntentClassifier] = None,
        transcriber=None,
        clock: Clock = time.monotonic,
    ):
        self.ledger = ledger
        self.gateway = gateway
        self.settings = settings
        self.classifier = classifier
        self.transcriber = transcriber
        self.clock = clock
        self._sessions: Dict[str, CallSession] = {}
        self._draining: Dict[str, asyncio.Task] = {}

    @property
    def active_calls(self) -> int:
        return len(self._sessions)

    @property
    def draining_calls(self) -> int:
        return len(self._draining)

    def get(self, call_id: str) -> Optional[CallSession]:
        return self._sessions.get(call_id)

    def _assign_call_id(self, requested: Optional[str]) -> str:
        if requested:
            if requested in self._sessions or requested in self._draining:
                logger.warning(f"Call id {requested} already has a live session, generating a new one")
            elif not SAFE_CALL_ID.match(requested):
                logger.warning(f"Provider call id {requested!r} is not usable, generating a new one")
            else:
                return requested
        call_id = uuid.uuid4().hex
        while call_id in self._sessions or call_id in self._draining:
            call_id = uuid.uuid4().hex
        return call_id

    async def on_connect(self, connection: WebSocket, call_id: Optional[str] = None) -> CallSession:
        """
        Register a session for a new connection.

        Args:
            connection: The accepted WebSocket
            call_id: Provider-supplied call id, reused when free and well-formed.
                If a closed session with this id is still finishing its turns,
                the new session waits for it so the call keeps one writer.

        Returns:
            The started CallSession
        """
        if call_id:
            await self._wait_for_draining(call_id)
        assigned = self._assign_call_id(call_id)
        session = CallSession(
            Call(call_id=assigned),
            connection,
            ledger=self.ledger,
            gateway=self.gateway,
            settings=self.settings,
            classifier=self.classifier,
            transcriber=self.transcriber,
            clock=self.clock,
        )
        self._sessions[assigned] = session
        await session.start()
        logger.info(f"Session registered for call {assigned} ({self.active_calls} active)")
        await record_event(self.ledger, assigned, LOG_WS_CONNECT, {
            "provider_call_id": call_id,
            "reused_provider_id": assigned == call_id,
        })
        return session

    async def on_close(self, call_id: str, reason: str = "connection_closed") -> None:
        """End and release a session; queued turns keep running to completion."""
        session = self._sessions.pop(call_id, None)
        if session is None:
            return
        session.detach()
        await session.end(reason)
        worker = session.worker
        if worker is not None and not worker.done():
            self._draining[call_id] = worker
            worker.add_done_callback(lambda task: self._release_draining(call_id, task))
        logger.info(f"Session released for call {call_id} ({self.active_calls} active)")
        await record_event(self.ledger, call_id, LOG_WS_CLOSE, {"reason": reason})

    async def shutdown(self) -> None:
        """Close every live session and wait for in-flight turns."""
        for call_id in list(self._sessions):
            await self.on_close(call_id, reason="shutdown")
        if self._draining:
            await asyncio.gather(*self._draining.values(), return_exceptions=True)

    def _release_draining(self, call_id: str, worker: asyncio.Task) -> None:
        if self._draining.get(call_id) is worker:
            del self._draining[call_id]

    async def _wait_for_draining(self, call_id: str) -> None:
        """Let a closed session with this id finish its queued turns first."""
        worker = self._draining.get(call_id)
        if worker is None:
            return
        logger.info(f"Call {call_id} reconnected while its previous session is finishing, waiting")
        await asyncio.wait({worker})
