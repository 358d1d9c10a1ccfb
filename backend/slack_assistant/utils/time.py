"""Time helpers."""

from __future__ import annotations

import time


def now_ms() -> int:
    """Return current timestamp in milliseconds."""
    return int(time.time() * 1000)


def relative_age(slack_ts: str, now: float | None = None) -> str:
    """Render a Slack ``ts`` (epoch seconds as a string) as a coarse age."""
    current = time.time() if now is None else now
    try:
        sent = float(slack_ts)
    except (TypeError, ValueError):
        return "unknown"
    diff_seconds = current - sent
    minutes = int(diff_seconds // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = int(diff_seconds // 3600)
    if hours < 24:
        return f"{hours}h ago"
    return f"{int(diff_seconds // 86400)}d ago"
