"""Watch-set administration plus the read and send paths.

Store calls run in a worker thread so the event loop is never blocked on
SQLite; the connection is shared under the store's lock.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from slack_assistant.core.logging import get_logger, profile_context
from slack_assistant.db.store import EventStore
from slack_assistant.models.entities import NewMessage, StoredMessage, WatchedConversation
from slack_assistant.slack.client import ConversationRef, SentMessage, SlackClientManager

logger = get_logger(__name__)


@dataclass(slots=True)
class ConversationHistory:
    conversation_id: str
    source: str
    messages: list[dict[str, Any]]


class ConversationService:
    def __init__(self, store: EventStore, clients: SlackClientManager) -> None:
        self.store = store
        self.clients = clients

    def list_watched(self, profile_id: str) -> list[WatchedConversation]:
        return self.store.list_watch(profile_id)

    async def list_channels(self, profile_id: str, limit: int = 200) -> list[dict[str, Any]]:
        """Channels the profile belongs to, straight from the Web API."""
        return await self.clients.list_conversations(profile_id, limit)

    async def search(self, profile_id: str, query: str, limit: int = 50) -> list[dict[str, Any]]:
        query = query.strip()
        if not query:
            raise ValueError("Search query must not be empty")
        return await self.clients.search_messages(profile_id, query, limit)

    async def add_watch(
        self,
        profile_id: str,
        conversation: str,
        priority: str = "normal",
        description: str | None = None,
    ) -> ConversationRef:
        resolved = await self.clients.resolve_conversation(profile_id, conversation)
        await asyncio.to_thread(self.store.upsert_watch, profile_id, resolved.id, resolved.name, priority, description)
        logger.info("Watching #%s (%s) at %s priority", resolved.name, resolved.id, priority, extra=profile_context(profile_id))
        return resolved

    async def remove_watch(self, profile_id: str, conversation: str) -> ConversationRef:
        resolved = await self.clients.resolve_conversation(profile_id, conversation)
        await asyncio.to_thread(self.store.remove_watch, profile_id, resolved.id)
        logger.info("Stopped watching #%s (%s)", resolved.name, resolved.id, extra=profile_context(profile_id))
        return resolved

    async def read(self, profile_id: str, conversation: str, limit: int = 30) -> ConversationHistory:
        """Stored messages when there are any, otherwise the Web API history."""
        resolved = await self.clients.resolve_conversation(profile_id, conversation)
        cached = await asyncio.to_thread(self.store.get_conversation_messages, profile_id, resolved.id, limit)
        if cached:
            return ConversationHistory(resolved.id, "cache", [_stored_to_dict(message) for message in cached])
        history = await self.clients.get_history(profile_id, resolved.id, limit)
        return ConversationHistory(resolved.id, "api", history)

    async def read_thread(self, profile_id: str, conversation: str, thread_ts: str) -> ConversationHistory:
        """The root message and every reply of a thread, oldest first."""
        resolved = await self.clients.resolve_conversation(profile_id, conversation)
        replies = await self.clients.get_thread(profile_id, resolved.id, thread_ts)
        return ConversationHistory(resolved.id, "api", replies)

    async def send(
        self,
        profile_id: str,
        own_user_id: str,
        conversation: str,
        text: str,
        thread_ts: str | None = None,
    ) -> SentMessage:
        resolved = await self.clients.resolve_conversation(profile_id, conversation)
        sent = await self.clients.post_message(profile_id, resolved.id, text, thread_ts)
        try:
            await asyncio.to_thread(self._record_sent, profile_id, own_user_id, resolved, sent, thread_ts)
        except Exception as exc:
            logger.warning("Sent %s but failed to record it: %s", sent.ts, exc, extra=profile_context(profile_id))
        return sent

    def _record_sent(
        self,
        profile_id: str,
        own_user_id: str,
        resolved: ConversationRef,
        sent: SentMessage,
        thread_ts: str | None,
    ) -> None:
        if thread_ts:
            self.store.mark_replied(profile_id, sent.conversation_id, thread_ts)
        self.store.insert_if_absent(
            NewMessage(
                ts=sent.ts,
                profile_id=profile_id,
                conversation_id=sent.conversation_id,
                conversation_name=resolved.name,
                user_id=own_user_id,
                text=sent.text,
                thread_ts=thread_ts,
                is_own_message=True,
            )
        )


def _stored_to_dict(message: StoredMessage) -> dict[str, Any]:
    return {
        "ts": message.ts,
        "user": message.user_id,
        "username": message.username,
        "text": message.text,
        "thread_ts": message.thread_ts,
        "needs_reply": message.needs_reply and not message.replied,
    }


__all__ = ["ConversationService", "ConversationHistory"]
