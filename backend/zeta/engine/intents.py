"""
Intent Heuristics

Keyword classification of chat messages. No model call: these checks run
before anything else in the chat pipeline and must be cheap.
"""
import re

from pydantic import BaseModel


SKIP_PHRASES = {
    "skip",
    "skip this",
    "skip for now",
    "idk",
    "i dont know",
    "i don't know",
}

ADD_RE = re.compile(r"\b(?:calendar|schedule|remind me|reminder|add|put)(?:s|d|ed)?\b")
MODIFY_RE = re.compile(r"\b(?:fix|move|change|update|reschedule)(?:s|d|ed)?\b")
DONE_RE = re.compile(r"\b(?:done|finished|complete|all set|set up|configured)\b")
STATUS_RE = re.compile(r"\bonboarding\b.*(?:step|status|progress)")


class IntentClassification(BaseModel):
    """Keyword flags for a single message."""
    wants_add: bool = False
    wants_modify: bool = False
    is_skip: bool = False
    is_done: bool = False
    is_status_question: bool = False

    @property
    def wants_calendar_action(self) -> bool:
        return self.wants_add or self.wants_modify


def normalize_message(text: str) -> str:
    return " ".join((text or "").lower().split())


def is_skip_message(text: str) -> bool:
    """Exact (case/whitespace-insensitive) match against the skip phrases."""
    return normalize_message(text) in SKIP_PHRASES


def classify_intent(text: str) -> IntentClassification:
    lower = normalize_message(text)
    return IntentClassification(
        wants_add=bool(ADD_RE.search(lower)),
        wants_modify=bool(MODIFY_RE.search(lower)),
        is_skip=lower in SKIP_PHRASES,
        is_done=bool(DONE_RE.search(lower)),
        is_status_question=bool(STATUS_RE.search(lower)),
    )
