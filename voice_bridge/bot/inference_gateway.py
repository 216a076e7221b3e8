"""
Gateway to the conversational backend.

The gateway turns a system prompt, the prior conversation memory and the
caller's new utterance into a reply, calling the backend exactly once per
turn. Backend replies come in more than one shape (Responses API output
items, chat-completion choices, flat ``audio``/``text`` fields), so the reply
is parsed by an ordered list of extraction strategies; the first strategy
that finds non-empty content wins and its name is logged.

Any failure (timeout, exception, malformed reply) yields a degraded result
with a fixed apology instead of an exception.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Set, Tuple

from voice_bridge.config.constants import (
    DEFAULT_INFERENCE_TIMEOUT_SECONDS,
    DEGRADED_REPLY_TEXT,
    LOG_BACKEND_FAILURE,
    LOG_INFERENCE_SUCCESS,
    LOGGER_NAME,
)
from voice_bridge.models.call import MemoryEntry, Role, prompt_messages
from voice_bridge.storage.ledger import CallLedger, record_event

logger = logging.getLogger(LOGGER_NAME)


class InferenceBackend(Protocol):
    """External conversational backend: role/content messages in, mapping out."""

    async def complete(self, messages: List[Dict[str, str]], params: Dict[str, Any]) -> Any:
        ...


class MalformedResponseError(Exception):
    """Raised when a backend reply carries no usable content."""


@dataclass(frozen=True)
class GatewayResult:
    """Reply for one turn."""

    assistant_text: str
    assistant_audio: Optional[str] = None
    degraded: bool = False
    strategy: Optional[str] = None


@dataclass(frozen=True)
class ExtractedContent:
    text: str = ""
    audio: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not self.text and not self.audio


@dataclass(frozen=True)
class ExtractionStrategy:
    """A named way of finding reply content in a backend response."""

    name: str
    extract: Callable[[Mapping[str, Any]], Optional[ExtractedContent]]


def _index(value: Any, position: int) -> Any:
    if isinstance(value, (list, tuple)) and len(value) > position:
        return value[position]
    return None


def _get(value: Any, key: str) -> Any:
    return value.get(key) if isinstance(value, Mapping) else None


def _audio_content(audio: Any) -> Optional[ExtractedContent]:
    """Audio may be a bare base64 string or an object with data/transcript."""
    if isinstance(audio, str) and audio:
        return ExtractedContent(audio=audio)
    data = _get(audio, "data")
    if isinstance(data, str) and data:
        transcript = _get(audio, "transcript")
        return ExtractedContent(text=transcript if isinstance(transcript, str) else "", audio=data)
    return None


def _text_content(text: Any) -> Optional[ExtractedContent]:
    if isinstance(text, str) and text.strip():
        return ExtractedContent(text=text.strip())
    return None


def _responses_output_audio(response: Mapping[str, Any]) -> Optional[ExtractedContent]:
    return _audio_content(_get(_index(_get(response, "output"), 0), "audio"))


def _chat_message_audio(response: Mapping[str, Any]) -> Optional[ExtractedContent]:
    message = _get(_index(_get(response, "choices"), 0), "message")
    return _audio_content(_get(message, "audio"))


def _top_level_audio(response: Mapping[str, Any]) -> Optional[ExtractedContent]:
    return _audio_content(_get(response, "audio"))


def _responses_output_text(response: Mapping[str, Any]) -> Optional[ExtractedContent]:
    found = _text_content(_get(response, "output_text"))
    if found:
        return found
    for item in _get(response, "output") or []:
        for part in _get(item, "content") or []:
            found = _text_content(_get(part, "text"))
            if found:
                return found
    return None


def _chat_message_content(response: Mapping[str, Any]) -> Optional[ExtractedContent]:
    message = _get(_index(_get(response, "choices"), 0), "message")
    return _text_content(_get(message, "content"))


def _top_level_text(response: Mapping[str, Any]) -> Optional[ExtractedContent]:
    return _text_content(_get(response, "text"))


EXTRACTION_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    ExtractionStrategy("responses_output_audio", _responses_output_audio),
    ExtractionStrategy("chat_message_audio", _chat_message_audio),
    ExtractionStrategy("top_level_audio", _top_level_audio),
    ExtractionStrategy("responses_output_text", _responses_output_text),
    ExtractionStrategy("chat_message_content", _chat_message_content),
    ExtractionStrategy("top_level_text", _top_level_text),
)


def extract_reply(
    response: Any,
    strategies: Sequence[ExtractionStrategy] = EXTRACTION_STRATEGIES,
) -> Tuple[str, ExtractedContent]:
    """
    Find the reply content in a backend response.

    Returns:
        The name of the matching strategy and the content it found

    Raises:
        MalformedResponseError: if the response is not a mapping or no strategy matches
    """
    if hasattr(response, "model_dump"):
        response = response.model_dump()
    if not isinstance(response, Mapping):
        raise MalformedResponseError(f"Expected a mapping, got {type(response).__name__}")
    for strategy in strategies:
        content = strategy.extract(response)
        if content is not None and not content.empty:
            return strategy.name, content
    raise MalformedResponseError(
        f"No extraction strategy matched response keys: {sorted(response.keys())}"
    )


def build_messages(
    system_prompt: str,
    memory: Sequence[MemoryEntry],
    user_text: str,
) -> List[Dict[str, str]]:
    """Prompt sequence: system first, then prior memory in order, then the new turn."""
    prior = [entry for entry in memory if entry.role != Role.SYSTEM]
    return (
        [{"role": Role.SYSTEM.value, "content": system_prompt}]
        + prompt_messages(prior)
        + [{"role": Role.USER.value, "content": user_text}]
    )


class InferenceGateway:
    """Calls the backend once per turn and never raises to the caller."""

    def __init__(
        self,
        backend: Optional[InferenceBackend],
        ledger: CallLedger,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = DEFAULT_INFERENCE_TIMEOUT_SECONDS,
        strategies: Sequence[ExtractionStrategy] = EXTRACTION_STRATEGIES,
        apology: str = DEGRADED_REPLY_TEXT,
    ):
        self.backend = backend
        self.ledger = ledger
        self.params = dict(params or {})
        self.timeout = timeout
        self.strategies = tuple(strategies)
        self.apology = apology
        self.in_flight: Set[str] = set()

    async def respond(
        self,
        call_id: str,
        system_prompt: str,
        memory: Sequence[MemoryEntry],
        user_text: str,
    ) -> GatewayResult:
        """
        Produce the assistant reply for one turn.

        Args:
            call_id: Call the turn belongs to
            system_prompt: Persona/intent/tone instructions for this turn
            memory: Conversation memory snapshot taken before this turn
            user_text: The caller's utterance for this turn

        Returns:
            A GatewayResult; ``degraded`` is set when the backend failed
        """
        if call_id in self.in_flight:
            logger.warning(f"Second inference request while one is in flight for call {call_id}")
        messages = build_messages(system_prompt, memory, user_text)
        self.in_flight.add(call_id)
        try:
            if self.backend is None:
                raise RuntimeError("No inference backend configured")
            response = await asyncio.wait_for(
                self.backend.complete(messages, self.params), timeout=self.timeout
            )
            strategy, content = extract_reply(response, self.strategies)
        except asyncio.TimeoutError:
            return await self._degraded(call_id, "timeout", f"No reply within {self.timeout}s")
        except MalformedResponseError as e:
            return await self._degraded(call_id, "malformed_response", str(e))
        except Exception as e:
            return await self._degraded(call_id, "backend_error", f"{type(e).__name__}: {e}")
        finally:
            self.in_flight.discard(call_id)

        logger.info(f"Inference reply for call {call_id} matched strategy '{strategy}'")
        await record_event(self.ledger, call_id, LOG_INFERENCE_SUCCESS, {
            "strategy": strategy,
            "has_audio": content.audio is not None,
            "text_length": len(content.text),
        })
        return GatewayResult(
            assistant_text=content.text,
            assistant_audio=content.audio,
            strategy=strategy,
        )

    async def _degraded(self, call_id: str, cause: str, detail: str) -> GatewayResult:
        logger.error(f"Inference failed for call {call_id} ({cause}): {detail}")
        await record_event(self.ledger, call_id, LOG_BACKEND_FAILURE, {
            "cause": cause,
            "detail": detail,
        })
        return GatewayResult(assistant_text=self.apology, degraded=True)
