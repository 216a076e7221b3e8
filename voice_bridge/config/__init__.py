"""
Configuration module for the voice bridge.

Key components:
- constants: protocol event names, ledger event kinds and defaults shared
  across modules.
- logging_config: console and rotating-file logging for the application logger.
- settings: the ``BridgeSettings`` dataclass built from environment variables.

Usage examples:
```python
from voice_bridge.config.logging_config import configure_logging
from voice_bridge.config.settings import BridgeSettings

logger = configure_logging()
settings = BridgeSettings.from_env()
logger.info(f"Turn policy: {settings.turn_policy}")
```
"""
