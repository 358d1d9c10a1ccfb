"""Pending-reply queue presentation."""

from __future__ import annotations

from slack_assistant.db.store import EventStore
from slack_assistant.models.entities import PendingMessage
from slack_assistant.utils.text import normalize, truncate
from slack_assistant.utils.time import relative_age


def get_pending(
    store: EventStore,
    profile_id: str | None = None,
    conversation_id: str | None = None,
    limit: int = 20,
) -> dict[str, list[PendingMessage]]:
    """Pending messages grouped by profile, keeping the queue order inside each group."""
    return group_by_profile(store.get_pending(profile_id, conversation_id, limit))


def group_by_profile(pending: list[PendingMessage]) -> dict[str, list[PendingMessage]]:
    grouped: dict[str, list[PendingMessage]] = {}
    for item in pending:
        grouped.setdefault(item.message.profile_id, []).append(item)
    return grouped


def format_pending(
    grouped: dict[str, list[PendingMessage]],
    profile_id: str | None = None,
    now: float | None = None,
) -> str:
    total = sum(len(items) for items in grouped.values())
    if total == 0:
        scope = f'profile "{profile_id}"' if profile_id else "any profile"
        return f"No pending replies for {scope}. All caught up!"

    sections: list[str] = []
    for pid, items in grouped.items():
        lines = [_format_line(item, now) for item in items]
        sections.append(f"**[{pid}]** ({len(items)} pending):\n" + "\n".join(lines))
    return f"**Pending Replies ({total} total):**\n\n" + "\n\n".join(sections)


def _format_line(item: PendingMessage, now: float | None) -> str:
    message = item.message
    conversation = message.conversation_name or message.conversation_id
    author = message.username or message.user_id
    priority = f"[{item.priority.upper()}] " if item.priority != "normal" else ""
    thread = f" (thread: {message.thread_ts})" if message.thread_ts else ""
    preview = truncate(normalize(message.text), 100)
    return f'  - {priority}#{conversation} - {author}: "{preview}"{thread} ({relative_age(message.ts, now)})'


__all__ = ["get_pending", "group_by_profile", "format_pending"]
