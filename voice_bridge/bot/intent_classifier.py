"""
Rule-based intent detection for caller utterances.

Rules are checked in order and the first match wins: scheduling language is
checked before information requests, which are checked before greetings, so
"Hi, can I book an appointment?" is a scheduling request.
"""

import re
from dataclasses import dataclass
from typing import Literal, Pattern, Protocol, Sequence

IntentTag = Literal["schedule_interview", "info", "greeting", "unknown"]

SCHEDULE_INTERVIEW: IntentTag = "schedule_interview"
INFO: IntentTag = "info"
GREETING: IntentTag = "greeting"
UNKNOWN: IntentTag = "unknown"


class IntentClassifier(Protocol):
    """Anything that maps caller text to an intent tag."""

    def classify(self, text: str) -> IntentTag:
        ...


@dataclass(frozen=True)
class IntentRule:
    tag: IntentTag
    pattern: Pattern


def _keywords(*words: str) -> Pattern:
    alternatives = "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in words)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


DEFAULT_RULES: Sequence[IntentRule] = (
    IntentRule(SCHEDULE_INTERVIEW, _keywords(
        "book", "booking", "appointment", "appointments", "schedule", "reschedule",
        "interview", "meeting", "reserve", "reservation", "slot", "availability",
        "available", "set up a time", "come in",
    )),
    IntentRule(INFO, _keywords(
        "price", "prices", "cost", "how much", "hours", "open", "opening", "close",
        "closing", "location", "address", "where are you", "directions", "parking",
        "information", "info", "policy", "services",
    )),
    IntentRule(GREETING, _keywords(
        "hello", "hi", "hey", "good morning", "good afternoon", "good evening",
        "howdy", "hiya",
    )),
)


class KeywordIntentClassifier:
    """Ordered keyword rules; first matching rule decides the intent."""

    def __init__(self, rules: Sequence[IntentRule] = DEFAULT_RULES):
        self.rules = tuple(rules)

    def classify(self, text: str) -> IntentTag:
        if not text:
            return UNKNOWN
        for rule in self.rules:
            if rule.pattern.search(text):
                return rule.tag
        return UNKNOWN
