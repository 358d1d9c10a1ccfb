"""Pending-queue presentation and conversation service paths."""

from __future__ import annotations

import asyncio
import threading

import pytest

from slack_assistant.core.errors import ConversationNotFoundError
from slack_assistant.db.store import EventStore
from slack_assistant.models.entities import NewMessage
from slack_assistant.services.conversations import ConversationService
from slack_assistant.services.pending import format_pending, get_pending
from slack_assistant.slack.client import MAX_SEARCH_PAGES, SlackClientManager
from slack_assistant.utils.time import relative_age

CHANNELS = [
    {"id": "C1", "name": "general", "is_member": True},
    {"id": "C2", "name": "random", "is_member": False},
]


def _conversations(store: EventStore, profiles, client) -> ConversationService:
    return ConversationService(store, SlackClientManager(profiles, clients={"work": client, "side": client}))


def test_format_pending_empty() -> None:
    assert format_pending({}) == "No pending replies for any profile. All caught up!"
    assert format_pending({}, "work") == 'No pending replies for profile "work". All caught up!'


def test_format_pending_groups_and_tags(store: EventStore) -> None:
    store.upsert_watch("work", "C1", "general", "high")
    store.insert_if_absent(
        NewMessage(
            ts="1700000000.000000",
            profile_id="work",
            conversation_id="C1",
            conversation_name="general",
            user_id="U_OTHER",
            username="alex",
            text="can you   review\nthis?",
            thread_ts="1699999000.000000",
            needs_reply=True,
        )
    )
    store.insert_if_absent(
        NewMessage(ts="1700000100.000000", profile_id="side", conversation_id="C9", user_id="U_X", text="ping", needs_reply=True)
    )

    grouped = get_pending(store)
    rendered = format_pending(grouped, now=1700003600.0)

    assert rendered.startswith("**Pending Replies (2 total):**")
    assert "**[work]** (1 pending):" in rendered
    assert '  - [HIGH] #general - alex: "can you review this?" (thread: 1699999000.000000) (1h ago)' in rendered
    assert '  - #C9 - U_X: "ping" (58m ago)' in rendered


def test_relative_age() -> None:
    assert relative_age("1700000000.000000", now=1700000030.0) == "just now"
    assert relative_age("1700000000.000000", now=1700000000.0 + 86400 * 3) == "3d ago"
    assert relative_age("not-a-ts", now=0) == "unknown"


def test_add_watch_resolves_names(store: EventStore, profiles, fake_client_cls) -> None:
    service = _conversations(store, profiles, fake_client_cls(channels=CHANNELS))

    resolved = asyncio.run(service.add_watch("work", "#general", "high", "team"))
    assert (resolved.id, resolved.name) == ("C1", "general")
    [watched] = service.list_watched("work")
    assert watched.priority == "high"

    asyncio.run(service.remove_watch("work", "C1"))
    assert service.list_watched("work") == []


def test_unknown_conversation_raises(store: EventStore, profiles, fake_client_cls) -> None:
    service = _conversations(store, profiles, fake_client_cls(channels=CHANNELS))
    with pytest.raises(ConversationNotFoundError):
        asyncio.run(service.add_watch("work", "#random"))


def test_read_prefers_store_then_api(store: EventStore, profiles, fake_client_cls) -> None:
    history = [{"ts": "1700000001.000000", "user": "U_OTHER", "text": "from api"}]
    service = _conversations(store, profiles, fake_client_cls(channels=CHANNELS, history=history))

    from_api = asyncio.run(service.read("work", "C1"))
    assert from_api.source == "api"
    assert from_api.messages == history

    store.insert_if_absent(
        NewMessage(ts="1700000002.000000", profile_id="work", conversation_id="C1", user_id="U_OTHER", text="stored")
    )
    cached = asyncio.run(service.read("work", "C1"))
    assert cached.source == "cache"
    assert [m["text"] for m in cached.messages] == ["stored"]


def test_send_marks_parent_replied_and_records_own_message(store: EventStore, profiles, fake_client_cls) -> None:
    client = fake_client_cls(channels=CHANNELS)
    service = _conversations(store, profiles, client)
    store.insert_if_absent(
        NewMessage(
            ts="1700000001.000000",
            profile_id="work",
            conversation_id="C1",
            user_id="U_OTHER",
            text="who can take this?",
            needs_reply=True,
        )
    )

    sent = asyncio.run(service.send("work", "U_ME", "C1", "on it", thread_ts="1700000001.000000"))

    assert client.posted == [
        {
            "channel": "C1",
            "text": "on it",
            "thread_ts": "1700000001.000000",
            "unfurl_links": False,
            "unfurl_media": False,
        }
    ]
    assert store.get_pending("work") == []
    [own] = store.get_own_messages("work")
    assert own.ts == sent.ts
    assert own.thread_ts == "1700000001.000000"
    assert store.has_participated("work", "C1", "1700000001.000000", "U_ME") is True


def test_send_records_off_the_event_loop_thread(store: EventStore, profiles, fake_client_cls) -> None:
    service = _conversations(store, profiles, fake_client_cls(channels=CHANNELS))
    writer_threads: list[int] = []
    insert = store.insert_if_absent

    def recording_insert(message: NewMessage) -> bool:
        writer_threads.append(threading.get_ident())
        return insert(message)

    store.insert_if_absent = recording_insert
    loop_threads: list[int] = []

    async def scenario() -> None:
        loop_threads.append(threading.get_ident())
        await service.send("work", "U_ME", "C1", "on it")

    asyncio.run(scenario())
    assert len(writer_threads) == 1
    assert writer_threads[0] != loop_threads[0]


def test_read_thread_resolves_name_and_returns_replies(store: EventStore, profiles, fake_client_cls) -> None:
    history = [
        {"ts": "1700000001.000000", "thread_ts": "1700000001.000000", "text": "root"},
        {"ts": "1700000002.000000", "thread_ts": "1700000001.000000", "text": "reply"},
        {"ts": "1700000003.000000", "text": "unrelated"},
    ]
    service = _conversations(store, profiles, fake_client_cls(channels=CHANNELS, history=history))

    thread = asyncio.run(service.read_thread("work", "#general", "1700000001.000000"))
    assert thread.conversation_id == "C1"
    assert thread.source == "api"
    assert [m["text"] for m in thread.messages] == ["root", "reply"]


def test_search_rejects_blank_query(store: EventStore, profiles, fake_client_cls) -> None:
    client = fake_client_cls(search_matches=[{"text": "deploy done", "ts": "1700000001.000000"}])
    service = _conversations(store, profiles, client)

    assert asyncio.run(service.search("work", "  deploy  ")) == client.search_matches
    assert client.search_queries == ["deploy"]
    with pytest.raises(ValueError):
        asyncio.run(service.search("work", "   "))


def test_search_stops_at_page_cap(store: EventStore, profiles, fake_client_cls) -> None:
    class EndlessSearchClient(fake_client_cls):
        async def search_messages(self, query, count, page, sort, sort_dir):
            self.search_queries.append(query)
            return {"messages": {"matches": [{"text": f"page {page}"}], "paging": {"pages": 500}}}

    client = EndlessSearchClient()
    service = _conversations(store, profiles, client)

    matches = asyncio.run(service.search("work", "deploy", limit=1000))
    assert len(client.search_queries) == MAX_SEARCH_PAGES
    assert matches[-1]["text"] == f"page {MAX_SEARCH_PAGES}"


def test_list_channels_only_includes_memberships(store: EventStore, profiles, fake_client_cls) -> None:
    service = _conversations(store, profiles, fake_client_cls(channels=CHANNELS))
    assert asyncio.run(service.list_channels("work")) == [{"id": "C1", "name": "general", "num_members": 0}]
