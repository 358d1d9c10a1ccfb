"""Test fixtures for the Slack assistant."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

PROFILES_YAML = """\
profiles:
  - id: work
    display_name: Work
    user_token: xoxp-work
    bot_token: xoxb-work
    app_token: xapp-work
    user_id: U_ME
    is_primary: true
  - id: side
    display_name: Side Project
    user_token: xoxp-side
    bot_token: xoxb-side
    app_token: xapp-side
    user_id: U_SIDE
"""


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    profiles_path = tmp_path / "profiles.yaml"
    profiles_path.write_text(PROFILES_YAML, encoding="utf-8")
    monkeypatch.setenv("SLKA_DB_PATH", str(tmp_path / "slack.db"))
    monkeypatch.setenv("SLKA_PROFILES_PATH", str(profiles_path))
    monkeypatch.delenv("SLKA_CONFIG", raising=False)
    monkeypatch.delenv("SLKA_HOST", raising=False)

    from slack_assistant.api import dependencies as deps
    from slack_assistant.core.config import get_settings

    get_settings.cache_clear()
    deps.reset()
    yield
    get_settings.cache_clear()
    deps.reset()


@pytest.fixture
def profiles():
    from slack_assistant.core.config import get_settings, load_profiles

    return load_profiles(get_settings().profiles_path)


@pytest.fixture
def store(tmp_path: Path, profiles):
    from slack_assistant.db.store import EventStore

    event_store = EventStore.open(tmp_path / "store.db")
    event_store.sync_profiles(profiles)
    yield event_store
    event_store.close()


class FakeTransport:
    """In-memory streaming transport; tests push events with ``deliver``."""

    def __init__(self, fail_connect: Exception | None = None, fail_disconnect: Exception | None = None) -> None:
        self.message_handlers: list[Any] = []
        self.lifecycle_handlers: list[Any] = []
        self.fail_connect = fail_connect
        self.fail_disconnect = fail_disconnect
        self.connected = False
        self.calls: list[str] = []

    def on_message(self, handler) -> None:
        self.message_handlers.append(handler)

    def on_lifecycle(self, handler) -> None:
        self.lifecycle_handlers.append(handler)

    async def connect(self) -> None:
        self.calls.append("connect")
        if self.fail_connect is not None:
            raise self.fail_connect
        self.connected = True
        for handler in self.lifecycle_handlers:
            handler(_lifecycle("connected"))

    async def disconnect(self) -> None:
        self.calls.append("disconnect")
        if self.fail_disconnect is not None:
            raise self.fail_disconnect
        self.connected = False

    async def deliver(self, payload: dict[str, Any], ack=None) -> list[str]:
        acks: list[str] = []

        async def default_ack() -> None:
            acks.append(payload.get("ts", ""))

        for handler in self.message_handlers:
            await handler(payload, ack or default_ack)
        return acks


def _lifecycle(value: str):
    from slack_assistant.ingest.types import LifecycleState

    return LifecycleState(value)


class FakeWebClient:
    """Stand-in for ``AsyncWebClient`` recording calls and returning canned data."""

    def __init__(
        self,
        channels: list[dict[str, Any]] | None = None,
        history: list[dict[str, Any]] | None = None,
        search_matches: list[dict[str, Any]] | None = None,
        search_error: Exception | None = None,
    ) -> None:
        self.channels = channels or []
        self.history = history or []
        self.search_matches = search_matches or []
        self.search_error = search_error
        self.posted: list[dict[str, Any]] = []
        self.search_queries: list[str] = []

    async def auth_test(self) -> dict[str, Any]:
        return {"ok": True, "user": "me"}

    async def conversations_list(self, **kwargs) -> dict[str, Any]:
        return {"channels": self.channels, "response_metadata": {"next_cursor": ""}}

    async def conversations_info(self, channel: str) -> dict[str, Any]:
        for entry in self.channels:
            if entry["id"] == channel:
                return {"channel": entry}
        return {"channel": {"id": channel}}

    async def conversations_history(self, channel: str, limit: int, cursor=None) -> dict[str, Any]:
        return {"messages": list(reversed(self.history))[:limit], "has_more": False}

    async def conversations_replies(self, channel: str, ts: str, limit: int, cursor=None) -> dict[str, Any]:
        return {"messages": [m for m in self.history if m.get("thread_ts") == ts], "has_more": False}

    async def search_messages(self, query: str, count: int, page: int, sort: str, sort_dir: str) -> dict[str, Any]:
        self.search_queries.append(query)
        if self.search_error is not None:
            raise self.search_error
        return {"messages": {"matches": self.search_matches[:count], "paging": {"pages": 1}}}

    async def chat_postMessage(self, **kwargs) -> dict[str, Any]:
        self.posted.append(kwargs)
        return {"ok": True, "ts": f"1700000{len(self.posted):03d}.000100", "channel": kwargs["channel"]}


@pytest.fixture
def fake_transport_cls():
    return FakeTransport


@pytest.fixture
def fake_client_cls():
    return FakeWebClient
