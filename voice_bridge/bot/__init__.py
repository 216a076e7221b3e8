"""
Bot module: everything that shapes and produces the receptionist's replies.

Key components:
- intent_classifier: ordered keyword rules mapping caller text to an intent tag.
- tone_selector: emotion label to tone instruction.
- prompts: the receptionist persona and per-intent instructions.
- inference_gateway: single call per turn to the conversational backend, with
  tolerant reply parsing and a degraded fallback.
- openai_backend: OpenAI implementations of the backend and the transcriber.

Usage examples:
```python
from voice_bridge.bot import InferenceGateway, OpenAIChatBackend
from voice_bridge.storage import InMemoryCallLedger

gateway = InferenceGateway(OpenAIChatBackend(api_key), InMemoryCallLedger())
result = await gateway.respond(call_id, system_prompt, memory, "Hello?")
```
"""

from voice_bridge.bot.inference_gateway import GatewayResult, InferenceGateway
from voice_bridge.bot.intent_classifier import IntentClassifier, KeywordIntentClassifier
from voice_bridge.bot.openai_backend import OpenAIChatBackend, OpenAITranscriber
from voice_bridge.bot.tone_selector import tone_for

__all__ = [
    "GatewayResult",
    "InferenceGateway",
    "IntentClassifier",
    "KeywordIntentClassifier",
    "OpenAIChatBackend",
    "OpenAITranscriber",
    "tone_for",
]
