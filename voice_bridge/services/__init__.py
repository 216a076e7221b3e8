"""
Services module: clients for talking to the bridge from the outside.

Key components:
- websocket_client: ``BridgeClient`` plays the telephony provider's side of
  the frame protocol, for manual testing and demos.

Usage examples:
```python
from voice_bridge.services.websocket_client import BridgeClient

client = BridgeClient("ws://localhost:8000/ws")
if await client.connect():
    await client.start_call()
    await client.send_speech("I'd like to book an appointment")
    reply = await client.receive_reply()
    await client.end_call()
await client.close()
```
"""
