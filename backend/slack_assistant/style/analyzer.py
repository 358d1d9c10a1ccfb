"""Statistical writing-style fingerprinting over a profile's own messages."""

from __future__ import annotations

import math
import re
from collections import Counter
from typing import Sequence

from slack_assistant.models.entities import StyleFingerprint

EMOJI_RE = re.compile(
    "["
    "\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "]"
)
GREETING_RE = re.compile(
    r"^(hey|hi|hello|yo|sup|morning|afternoon|evening|howdy|hiya|what's up|whats up)",
    re.IGNORECASE,
)
SIGN_OFF_RE = re.compile(
    r"(thanks|cheers|best|regards|thx|ty|thank you|lmk|let me know|talk soon|ttyl)[\s!.]*$",
    re.IGNORECASE,
)
_PUNCTUATION_RE = re.compile(r"[^\w\s]")

CASUAL_INDICATORS = ("lol", "haha", "yeah", "nah", "gonna", "wanna", "gotta", "tbh", "imo", "btw", "np", "nbd")
FORMAL_INDICATORS = (
    "please",
    "kindly",
    "would you",
    "could you",
    "appreciate",
    "regarding",
    "furthermore",
    "however",
)
STOP_WORDS = frozenset(
    {
        "the", "is", "at", "which", "on", "a", "an", "and", "or",
        "but", "in", "to", "for", "of", "it", "this", "that", "with",
    }
)

MAX_PATTERNS = 5
MAX_PHRASES = 10
MIN_PHRASE_COUNT = 3


def compute_fingerprint(messages: Sequence[str]) -> StyleFingerprint:
    """Derive a style fingerprint; empty input yields the neutral default."""
    if not messages:
        return StyleFingerprint()

    total = len(messages)
    avg_length = sum(len(message) for message in messages) / total

    emoji_ratio = _fraction(messages, lambda m: EMOJI_RE.search(m) is not None)
    exclamation_ratio = _fraction(messages, lambda m: "!" in m)
    ellipsis_ratio = _fraction(messages, lambda m: "..." in m or "…" in m)
    lowercase_ratio = _fraction(messages, _starts_lowercase)

    if lowercase_ratio > 0.7:
        capitalization = "lowercase"
    elif lowercase_ratio < 0.2:
        capitalization = "uppercase"
    else:
        capitalization = "normal"

    return StyleFingerprint(
        avg_message_length=int(round_half_up(avg_length)),
        emoji_frequency=round_half_up(emoji_ratio, 2),
        uses_exclamation=exclamation_ratio > 0.2,
        uses_ellipsis=ellipsis_ratio > 0.1,
        capitalization_style=capitalization,
        greeting_patterns=extract_greetings(messages),
        sign_off_patterns=extract_sign_offs(messages),
        common_phrases=extract_common_phrases(messages),
        formality_level=formality(messages),
        typical_response_length=length_bucket(avg_length),
    )


def extract_greetings(messages: Sequence[str]) -> list[str]:
    found = (GREETING_RE.match(message.strip()) for message in messages)
    return _first_distinct((match.group(0).lower() for match in found if match), MAX_PATTERNS)


def extract_sign_offs(messages: Sequence[str]) -> list[str]:
    found = (SIGN_OFF_RE.search(message.strip()) for message in messages)
    return _first_distinct((match.group(1).lower() for match in found if match), MAX_PATTERNS)


def extract_common_phrases(messages: Sequence[str]) -> list[str]:
    """Most frequent 2- and 3-grams seen at least three times.

    Counter preserves first-seen order, and ``most_common`` sorts stably, so
    equal counts keep the order in which the phrases first appeared.
    """
    counts: Counter[str] = Counter()
    for message in messages:
        words = [word for word in _PUNCTUATION_RE.sub("", message.lower()).split() if len(word) > 1]
        for size in (2, 3):
            for start in range(len(words) - size + 1):
                counts[" ".join(words[start : start + size])] += 1

    phrases = [
        phrase
        for phrase, count in counts.most_common()
        if count >= MIN_PHRASE_COUNT and not all(word in STOP_WORDS for word in phrase.split(" "))
    ]
    return phrases[:MAX_PHRASES]


def formality(messages: Sequence[str]) -> str:
    lowered = [message.lower() for message in messages]
    casual = sum(1 for message in lowered if any(word in message for word in CASUAL_INDICATORS))
    formal = sum(1 for message in lowered if any(word in message for word in FORMAL_INDICATORS))
    if casual > formal * 2:
        return "casual"
    if formal > casual * 2:
        return "formal"
    return "neutral"


def length_bucket(avg_length: float) -> str:
    if avg_length < 50:
        return "short"
    if avg_length < 200:
        return "medium"
    return "long"


def select_representative_samples(messages: Sequence[str], count: int = 50) -> list[str]:
    """Evenly spaced picks across the messages sorted by length."""
    if len(messages) <= count:
        return list(messages)
    ordered = sorted(messages, key=len)
    step = len(ordered) / count
    return [ordered[min(int(index * step), len(ordered) - 1)] for index in range(count)]


def _starts_lowercase(message: str) -> bool:
    if not message:
        return False
    first = message[0]
    return first == first.lower() and first != first.upper()


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with ties going up, so 2.5 becomes 3 and 0.125 becomes 0.13."""
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def _fraction(messages: Sequence[str], predicate) -> float:
    return sum(1 for message in messages if predicate(message)) / len(messages)


def _first_distinct(values, limit: int) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
            if len(seen) == limit:
                break
    return seen


__all__ = [
    "compute_fingerprint",
    "extract_greetings",
    "extract_sign_offs",
    "extract_common_phrases",
    "formality",
    "length_bucket",
    "select_representative_samples",
    "round_half_up",
]
