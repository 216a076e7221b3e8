"""
Receptionist Voice Bridge - telephony media streams to a conversational AI receptionist

The bridge accepts a telephony provider's WebSocket stream for a phone call,
turns caller speech (raw audio or already-transcribed text) into conversation
turns, asks a conversational backend to answer as a human-sounding
receptionist, and streams the spoken reply back to the caller.

Key Components:
- bot: intent classification, tone selection, prompts and the inference gateway
- config: constants, settings from the environment and logging setup
- models: call records and WebSocket frame schemas
- session: turn detection, the per-call state machine and the session registry
- storage: the CallLedger holding per-call memory and event logs
- services: a WebSocket client for exercising the bridge
- websocket_manager: accepts connections and pumps frames into sessions

Getting Started:
1. Set up environment variables (or a .env file):
   - OPENAI_API_KEY: Your OpenAI API key
   - TURN_POLICY: "finality" (transcribed text) or "windowed" (raw audio)
   - LEDGER_DIR: Where per-call memory and logs are written (default data/)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the telephony provider's voice webhook at http://your-server:8000/voice
"""
