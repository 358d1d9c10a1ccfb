"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

Priority = Literal["high", "normal", "low"]
PRIORITIES: tuple[str, ...] = ("high", "normal", "low")
PRIORITY_RANK: dict[str, int] = {"high": 1, "normal": 2, "low": 3}


@dataclass(slots=True)
class Profile:
    id: str
    display_name: str
    user_id: str
    is_primary: bool


@dataclass(slots=True)
class WatchedConversation:
    conversation_id: str
    profile_id: str
    name: str
    priority: str
    description: str | None
    added_at: int


@dataclass(slots=True)
class NewMessage:
    """A message ready to be written with insert-if-absent semantics."""

    ts: str
    profile_id: str
    conversation_id: str
    user_id: str
    text: str
    conversation_name: str | None = None
    username: str | None = None
    thread_ts: str | None = None
    is_own_message: bool = False
    needs_reply: bool = False


@dataclass(slots=True)
class StoredMessage:
    id: int
    ts: str
    profile_id: str
    conversation_id: str
    conversation_name: str | None
    user_id: str
    username: str | None
    text: str
    thread_ts: str | None
    is_own_message: bool
    needs_reply: bool
    replied: bool
    created_at: int


@dataclass(slots=True)
class PendingMessage:
    """A stored message awaiting a reply, with its conversation priority."""

    message: StoredMessage
    priority: str


@dataclass(slots=True)
class StyleFingerprint:
    avg_message_length: int = 100
    emoji_frequency: float = 0.0
    uses_exclamation: bool = False
    uses_ellipsis: bool = False
    capitalization_style: str = "normal"
    greeting_patterns: list[str] = field(default_factory=list)
    sign_off_patterns: list[str] = field(default_factory=list)
    common_phrases: list[str] = field(default_factory=list)
    formality_level: str = "neutral"
    typical_response_length: str = "medium"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class StyleProfile:
    """Cached fingerprint plus the sample texts it was derived from."""

    profile_id: str
    fingerprint: StyleFingerprint
    sample_messages: list[str]
    updated_at: int | None = None


__all__ = [
    "Priority",
    "PRIORITIES",
    "PRIORITY_RANK",
    "Profile",
    "WatchedConversation",
    "NewMessage",
    "StoredMessage",
    "PendingMessage",
    "StyleFingerprint",
    "StyleProfile",
]
