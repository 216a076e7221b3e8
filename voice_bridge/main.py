"""
FastAPI server for the receptionist voice bridge.

This module wires the bridge together: settings from the environment, the
CallLedger, the OpenAI-backed InferenceGateway and transcriber, the
SessionRegistry, and the HTTP/WebSocket routes:

- ``/ws``: the telephony media stream (optional ``callId`` query parameter)
- ``/voice``: voice webhook returning a TwiML connection descriptor
- ``/health`` and ``/``: monitoring and service information
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path

import dotenv
from fastapi import FastAPI, Request, Response, WebSocket

from voice_bridge.bot.inference_gateway import InferenceGateway
from voice_bridge.bot.openai_backend import OpenAIChatBackend, OpenAITranscriber
from voice_bridge.config.logging_config import configure_logging
from voice_bridge.config.settings import BridgeSettings
from voice_bridge.session.registry import SessionRegistry
from voice_bridge.storage.ledger import create_ledger
from voice_bridge.websocket_manager import WebSocketManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

logger = configure_logging()

PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")


def build_registry(settings: BridgeSettings) -> SessionRegistry:
    """Assemble the ledger, gateway and transcriber behind a SessionRegistry."""
    ledger = create_ledger(settings.ledger_backend, settings.ledger_dir)
    backend = None
    transcriber = None
    if settings.openai_api_key:
        backend = OpenAIChatBackend(settings.openai_api_key)
        transcriber = OpenAITranscriber(
            settings.openai_api_key,
            model=settings.transcribe_model,
            sample_rate=settings.input_sample_rate,
        )
    else:
        logger.warning("OPENAI_API_KEY not set, every reply will be the degraded fallback")
    gateway = InferenceGateway(
        backend,
        ledger,
        params=settings.generation_params,
        timeout=settings.inference_timeout_seconds,
    )
    return SessionRegistry(ledger, gateway, settings, transcriber=transcriber)


settings = BridgeSettings.from_env()
registry = build_registry(settings)
websocket_manager = WebSocketManager(registry)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Voice bridge ready (turn policy: {settings.turn_policy})")
    yield
    await registry.shutdown()
    logger.info("Voice bridge stopped")


app = FastAPI(
    title="Receptionist Voice Bridge",
    description="Bridges telephony media streams to a conversational AI receptionist",
    version="1.0.0",
    lifespan=lifespan,
)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for the telephony provider's media stream.

    Accepts JSON frames (start, media, user_speech, stop, call_end) and binary
    audio frames, and answers with assistant_audio or assistant_text frames.
    """
    await websocket_manager.handle_websocket(
        websocket, call_id=websocket.query_params.get("callId")
    )


@app.api_route("/voice", methods=["GET", "POST"])
async def voice_webhook(request: Request):
    """Voice webhook: point the provider's media stream at this bridge."""
    host = settings.public_host or request.headers.get("host", f"{HOST}:{PORT}")
    twiml = f"""<?xml version="1.0" encoding="UTF-8"?>
<Response>
    <Connect>
        <Stream url="wss://{host}/ws" />
    </Connect>
</Response>"""
    return Response(content=twiml, media_type="application/xml")


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status information including live and draining call counts.
    """
    return {
        "status": "healthy",
        "openai_api_key_configured": bool(settings.openai_api_key),
        "active_calls": registry.active_calls,
        "draining_calls": registry.draining_calls,
        "inferences_in_flight": len(registry.gateway.in_flight),
        "turn_policy": settings.turn_policy,
    }


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API."""
    return {
        "name": "Receptionist Voice Bridge",
        "description": "Bridges telephony media streams to a conversational AI receptionist",
        "version": "1.0.0",
        "endpoints": {
            "/ws": "WebSocket endpoint for the telephony media stream",
            "/voice": "Voice webhook returning the stream connection descriptor",
            "/health": "Health check endpoint",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{HOST}:{PORT}")
    uvicorn.run(
        app,
        host=HOST,
        port=PORT,
        websocket_ping_interval=5,
        websocket_max_size=16777216,  # 16MB - large enough for audio frames
        websocket_ping_timeout=20,
        http="h11"
    )
