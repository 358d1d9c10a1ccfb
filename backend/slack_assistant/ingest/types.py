"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

AckCallback = Callable[[], Awaitable[None]]


class LifecycleState(str, Enum):
    """Connection states reported by a streaming transport."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    DISCONNECTING = "disconnecting"
    DISCONNECTED = "disconnected"


@dataclass(slots=True)
class MessageEvent:
    """A message-type event as delivered by the streaming transport."""

    type: str
    conversation_id: str
    ts: str
    subtype: str | None = None
    conversation_type: str | None = None
    author_id: str | None = None
    text: str | None = None
    thread_ts: str | None = None
    author_display_name: str | None = None

    @property
    def is_thread_reply(self) -> bool:
        return bool(self.thread_ts) and self.thread_ts != self.ts

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "MessageEvent":
        """Map a Slack Events API ``event`` body onto the fields we use."""
        return cls(
            type=str(payload.get("type") or ""),
            subtype=payload.get("subtype") or None,
            conversation_id=str(payload.get("channel") or ""),
            conversation_type=payload.get("channel_type"),
            author_id=payload.get("user") or None,
            text=payload.get("text") or None,
            ts=str(payload.get("ts") or ""),
            thread_ts=payload.get("thread_ts") or None,
            author_display_name=payload.get("username"),
        )


@dataclass(slots=True)
class IngestStats:
    """Per-pipeline counters, mirrored into Prometheus."""

    received: int = 0
    discarded: int = 0
    stored: int = 0
    duplicates: int = 0
    flagged: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "received": self.received,
            "discarded": self.discarded,
            "stored": self.stored,
            "duplicates": self.duplicates,
            "flagged": self.flagged,
            "failed": self.failed,
        }


@dataclass(slots=True)
class StartOutcome:
    """Result of starting one profile's pipeline."""

    profile_id: str
    connected: bool
    detail: str | None = None


@dataclass(slots=True)
class StartReport:
    outcomes: list[StartOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def connected(self) -> list[str]:
        return [outcome.profile_id for outcome in self.outcomes if outcome.connected]

    def summary(self) -> str:
        names = ", ".join(self.connected)
        return f"{len(self.connected)}/{self.total} profiles connected: {names}"


__all__ = [
    "AckCallback",
    "LifecycleState",
    "MessageEvent",
    "IngestStats",
    "StartOutcome",
    "StartReport",
]
