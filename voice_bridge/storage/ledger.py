"""
Per-call persistence of conversation memory and the event log.

The CallLedger interface keeps CallSession independent of where records live:
memory is read and replaced as a whole ordered list, the event log is only
ever appended to. Two implementations ship with the bridge: an in-memory one
for tests and ephemeral deployments, and a flat-file one writing one JSON
document and one JSON-lines log per call.
"""

import asyncio
import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from voice_bridge.config.constants import LEDGER_BACKEND_MEMORY, LOGGER_NAME
from voice_bridge.models.call import LogEvent, MemoryEntry

logger = logging.getLogger(LOGGER_NAME)

SAFE_CALL_ID = re.compile(r"^[A-Za-z0-9_.\-]{1,128}$")


class LedgerError(Exception):
    """Raised when a ledger record cannot be read or written."""


class CallLedger(ABC):
    """Storage for per-call memory and event logs, keyed by call id."""

    @abstractmethod
    async def get_memory(self, call_id: str) -> List[MemoryEntry]:
        """Return the ordered memory for a call (empty if none)."""

    @abstractmethod
    async def replace_memory(self, call_id: str, entries: List[MemoryEntry]) -> None:
        """Replace the full memory record for a call."""

    @abstractmethod
    async def append_event(self, call_id: str, event: LogEvent) -> None:
        """Append one event to the call's log."""

    @abstractmethod
    async def get_events(self, call_id: str) -> List[LogEvent]:
        """Return the call's log in append order."""


class InMemoryCallLedger(CallLedger):
    """Ledger held in process memory."""

    def __init__(self):
        self._memory: Dict[str, List[MemoryEntry]] = {}
        self._events: Dict[str, List[LogEvent]] = {}

    async def get_memory(self, call_id: str) -> List[MemoryEntry]:
        return list(self._memory.get(call_id, []))

    async def replace_memory(self, call_id: str, entries: List[MemoryEntry]) -> None:
        self._memory[call_id] = list(entries)

    async def append_event(self, call_id: str, event: LogEvent) -> None:
        self._events.setdefault(call_id, []).append(event)

    async def get_events(self, call_id: str) -> List[LogEvent]:
        return list(self._events.get(call_id, []))


class FileCallLedger(CallLedger):
    """
    Ledger backed by flat files.

    Layout under ``base_dir``:
    - ``memory/<call_id>.json``: the full memory list, replaced atomically
    - ``logs/<call_id>.jsonl``: one LogEvent per line, append-only

    File I/O runs in a worker thread so the event loop keeps serving other calls.
    """

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)
        self.memory_dir = self.base_dir / "memory"
        self.log_dir = self.base_dir / "logs"
        self.memory_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def _memory_path(self, call_id: str) -> Path:
        return self.memory_dir / f"{_checked_id(call_id)}.json"

    def _log_path(self, call_id: str) -> Path:
        return self.log_dir / f"{_checked_id(call_id)}.jsonl"

    async def get_memory(self, call_id: str) -> List[MemoryEntry]:
        return await asyncio.to_thread(self._read_memory, self._memory_path(call_id))

    async def replace_memory(self, call_id: str, entries: List[MemoryEntry]) -> None:
        document = json.dumps([entry.model_dump(mode="json") for entry in entries])
        await asyncio.to_thread(self._write_atomic, self._memory_path(call_id), document)

    async def append_event(self, call_id: str, event: LogEvent) -> None:
        line = event.model_dump_json() + "\n"
        await asyncio.to_thread(self._append_line, self._log_path(call_id), line)

    async def get_events(self, call_id: str) -> List[LogEvent]:
        return await asyncio.to_thread(self._read_events, self._log_path(call_id))

    @staticmethod
    def _read_memory(path: Path) -> List[MemoryEntry]:
        if not path.exists():
            return []
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return [MemoryEntry.model_validate(item) for item in raw]
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise LedgerError(f"Cannot read memory record {path.name}: {e}") from e

    @staticmethod
    def _read_events(path: Path) -> List[LogEvent]:
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as f:
                return [LogEvent.model_validate_json(line) for line in f if line.strip()]
        except (OSError, ValidationError) as e:
            raise LedgerError(f"Cannot read event log {path.name}: {e}") from e

    @staticmethod
    def _write_atomic(path: Path, document: str) -> None:
        try:
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(document)
                os.replace(tmp_name, path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as e:
            raise LedgerError(f"Cannot write memory record {path.name}: {e}") from e

    @staticmethod
    def _append_line(path: Path, line: str) -> None:
        try:
            with path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            raise LedgerError(f"Cannot append to event log {path.name}: {e}") from e


def _checked_id(call_id: str) -> str:
    if not SAFE_CALL_ID.match(call_id or ""):
        raise LedgerError(f"Call id not usable as a record name: {call_id!r}")
    return call_id


async def record_event(
    ledger: CallLedger,
    call_id: str,
    kind: str,
    payload: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Append a LogEvent without letting a storage failure reach the caller.

    Returns:
        True if the event was stored, False if the ledger failed
    """
    try:
        await ledger.append_event(call_id, LogEvent(kind=kind, payload=payload or {}))
        return True
    except Exception as e:
        logger.error(f"Failed to record '{kind}' event for call {call_id}: {e}")
        return False


def create_ledger(backend: str, base_dir: str) -> CallLedger:
    """Build the ledger implementation named by configuration."""
    if backend == LEDGER_BACKEND_MEMORY:
        return InMemoryCallLedger()
    return FileCallLedger(base_dir)
