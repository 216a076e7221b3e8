"""
WebSocket connection manager for the telephony media stream.

This module implements the server side of the bridge's frame protocol:
- Accept the provider's WebSocket connection
- Register a CallSession for it with the SessionRegistry
- Feed every inbound frame to the session, one at a time and in arrival order
- Release the session when the connection closes or the call ends

The WebSocketManager never waits on inference: sessions queue completed
turns and answer from their own worker task.
"""

import logging
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect

from voice_bridge.config.constants import LOGGER_NAME
from voice_bridge.models.call import CallState
from voice_bridge.session.registry import SessionRegistry

logger = logging.getLogger(LOGGER_NAME)


class WebSocketManager:
    """Pumps frames from one WebSocket at a time into its CallSession."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def handle_websocket(self, websocket: WebSocket, call_id: Optional[str] = None):
        """Handle a WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object
            call_id: Provider call id taken from the connection URL, if any

        The connection stays open until the client disconnects or a stop /
        call_end frame ends the call.
        """
        await websocket.accept()
        session = await self.registry.on_connect(websocket, call_id)
        logger.info(f"WebSocket connection established for call {session.call_id}")
        reason = "connection_closed"

        try:
            while session.state != CallState.ENDED:
                message = await websocket.receive()
                if message.get("type") == "websocket.disconnect":
                    break
                if message.get("text") is not None:
                    await session.handle_text(message["text"])
                elif message.get("bytes") is not None:
                    await session.handle_bytes(message["bytes"])
            else:
                reason = "call_ended"
        except WebSocketDisconnect:
            logger.info(f"Client disconnected from call {session.call_id}")
        except Exception as e:
            reason = "connection_error"
            logger.error(f"Error in WebSocket connection for call {session.call_id}: {e}", exc_info=True)
        finally:
            await self.registry.on_close(session.call_id, reason=reason)
            try:
                await websocket.close()
            except RuntimeError:
                # already closed by the client
                pass
            logger.info(f"WebSocket connection closed for call {session.call_id}")
