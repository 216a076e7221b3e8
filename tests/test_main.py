import json
from unittest.mock import patch

from fastapi.testclient import TestClient

from voice_bridge import main
from voice_bridge.main import app

from conftest import FakeBackend, chat_reply

client = TestClient(app)


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert isinstance(response_json["openai_api_key_configured"], bool)
    assert response_json["active_calls"] == 0
    assert response_json["turn_policy"] in ("finality", "windowed")


def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "Receptionist Voice Bridge"
    assert response_json["version"] == "1.0.0"
    for endpoint in ("/ws", "/voice", "/health"):
        assert endpoint in response_json["endpoints"]


def test_voice_webhook_returns_stream_descriptor():
    response = client.post("/voice", headers={"host": "bridge.example.com"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert '<Stream url="wss://bridge.example.com/ws" />' in response.text


def test_voice_webhook_prefers_public_host():
    with patch.object(main.settings, "public_host", "voice.example.org"):
        response = client.get("/voice")
    assert 'url="wss://voice.example.org/ws"' in response.text


def test_websocket_round_trip():
    backend = FakeBackend(chat_reply("Good morning! How can I help?", audio="UklGRg=="))
    with patch.object(main.registry.gateway, "backend", backend):
        with client.websocket_connect("/ws?callId=CA-roundtrip") as websocket:
            websocket.send_text(json.dumps({"event": "start", "start": {}}))
            websocket.send_text(json.dumps({"event": "user_speech", "text": "Good morning", "isFinal": True}))
            reply = websocket.receive_json()
            websocket.send_text(json.dumps({"event": "stop"}))

    assert reply == {"event": "assistant_audio", "audio": "UklGRg=="}
    assert backend.calls[0][-1] == {"role": "user", "content": "Good morning"}
