"""Lexical heuristics deciding whether an incoming message awaits a reply."""

from __future__ import annotations

import re
from typing import Callable

from slack_assistant.ingest.types import MessageEvent

# (conversation_id, thread_ts, user_id) -> whether the user posted in that thread
HistoryLookup = Callable[[str, str, str], bool]

DIRECT_CONVERSATION_TYPES = frozenset({"im", "mpim"})

QUESTION_STARTERS = (
    "who",
    "what",
    "when",
    "where",
    "why",
    "how",
    "can",
    "could",
    "would",
    "should",
    "does",
    "did",
    "is",
    "are",
    "has",
    "have",
    "will",
)
OPEN_REQUEST_WORDS = ("anyone", "somebody", "someone", "anybody")

_QUESTION_START_RE = re.compile(rf"^({'|'.join(QUESTION_STARTERS)})\b", re.IGNORECASE)
_OPEN_REQUEST_RE = re.compile(rf"\b({'|'.join(OPEN_REQUEST_WORDS)})\b", re.IGNORECASE)


def mention_token(user_id: str) -> str:
    return f"<@{user_id}>"


def looks_like_question(text: str) -> bool:
    stripped = text.strip()
    if stripped.endswith("?"):
        return True
    if _QUESTION_START_RE.match(stripped):
        return True
    return _OPEN_REQUEST_RE.search(text) is not None


def is_discardable(event: MessageEvent) -> bool:
    """Edits, deletes, joins and other subtyped or empty events are never stored."""
    return bool(event.subtype) or not event.text or not event.author_id


def classify(event: MessageEvent, own_user_id: str, history_lookup: HistoryLookup) -> bool:
    """Return True when ``event`` likely needs a reply from ``own_user_id``.

    Rules are evaluated in order and the first match wins:

    1. the text mentions the user;
    2. the conversation is a direct or group-direct message;
    3. it is a thread reply in a thread the user already posted in;
    4. it is a top-level post that reads like a question.

    ``history_lookup`` is only consulted for rule 3. Authorship is not
    checked here; callers force own messages to False.
    """
    text = event.text or ""

    if mention_token(own_user_id) in text:
        return True

    if event.conversation_type in DIRECT_CONVERSATION_TYPES:
        return True

    if event.is_thread_reply and history_lookup(event.conversation_id, event.thread_ts, own_user_id):
        return True

    if not event.thread_ts and looks_like_question(text):
        return True

    return False


__all__ = [
    "HistoryLookup",
    "DIRECT_CONVERSATION_TYPES",
    "QUESTION_STARTERS",
    "OPEN_REQUEST_WORDS",
    "mention_token",
    "looks_like_question",
    "is_discardable",
    "classify",
]
