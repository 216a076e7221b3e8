"""
Storage module: the CallLedger interface and its implementations.

Usage examples:
```python
from voice_bridge.storage.ledger import FileCallLedger, record_event

ledger = FileCallLedger("data")
await record_event(ledger, call_id, "ws_connect")
```
"""

from voice_bridge.storage.ledger import (
    CallLedger,
    FileCallLedger,
    InMemoryCallLedger,
    LedgerError,
    create_ledger,
    record_event,
)
