"""
WebSocket client for driving the voice bridge.

This module plays the telephony provider's side of the frame protocol so the
bridge can be exercised without a phone call: it connects to ``/ws``, sends
start/media/user_speech/stop frames and reads the assistant's replies.
"""

import base64
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urlencode

import websockets

from voice_bridge.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class BridgeClient:
    """
    Client for the bridge's WebSocket endpoint.

    Sends frames as the telephony provider would and receives
    assistant_audio / assistant_text replies.
    """

    def __init__(self, url: str, call_id: Optional[str] = None):
        """
        Initialize the bridge WebSocket client.

        Args:
            url: The WebSocket URL of the bridge, e.g. ws://localhost:8000/ws
            call_id: Optional provider call id passed as the callId query parameter
        """
        self.url = url
        self.call_id = call_id
        self.websocket = None

    @property
    def connect_url(self) -> str:
        if not self.call_id:
            return self.url
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode({'callId': self.call_id})}"

    async def connect(self) -> bool:
        """
        Establish a connection to the bridge.

        Returns:
            True if connection was successful, False otherwise
        """
        try:
            self.websocket = await websockets.connect(self.connect_url)
            logger.info(f"Connected to bridge at {self.connect_url}")
            return True
        except Exception as e:
            logger.error(f"Failed to connect to bridge: {e}")
            return False

    async def _send(self, frame: Dict[str, Any]) -> bool:
        if not self.websocket:
            logger.error(f"Cannot send {frame.get('event')}: Not connected")
            return False
        await self.websocket.send(json.dumps(frame))
        return True

    async def start_call(self, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """Send the start frame."""
        return await self._send({"event": "start", "start": metadata or {}})

    async def send_audio(self, audio_data: bytes) -> bool:
        """Send raw audio as a base64 media frame."""
        encoded = base64.b64encode(audio_data).decode("utf-8")
        return await self._send({"event": "media", "media": {"payload": encoded}})

    async def send_speech(self, text: str, is_final: bool = True, emotion: Optional[str] = None) -> bool:
        """Send a pre-transcribed user_speech frame."""
        frame: Dict[str, Any] = {"event": "user_speech", "text": text, "isFinal": is_final}
        if emotion:
            frame["emotion"] = emotion
        return await self._send(frame)

    async def end_call(self) -> bool:
        """Send the stop frame."""
        return await self._send({"event": "stop"})

    async def receive_reply(self) -> Optional[Dict[str, Any]]:
        """
        Wait for the next reply frame.

        Returns:
            The decoded frame, or None if the connection closed
        """
        if not self.websocket:
            logger.error("Cannot receive: Not connected")
            return None
        try:
            data = await self.websocket.recv()
        except websockets.exceptions.ConnectionClosed:
            logger.info("WebSocket connection closed by bridge")
            self.websocket = None
            return None
        reply = json.loads(data)
        logger.info(f"Received {reply.get('event')} from bridge")
        return reply

    async def listen(self, handler: Callable[[Dict[str, Any]], Awaitable[None]]) -> None:
        """Pass every reply to ``handler`` until the bridge closes the connection."""
        while self.websocket:
            reply = await self.receive_reply()
            if reply is None:
                break
            await handler(reply)

    async def close(self) -> None:
        """
        Close the WebSocket connection.
        """
        if self.websocket:
            await self.websocket.close()
            logger.info("Closed WebSocket connection")
            self.websocket = None
