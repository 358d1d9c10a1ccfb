"""Outbound Slack Web API access, one user-token client per profile."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Sequence

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from slack_assistant.core.config import ProfileConfig, get_profile
from slack_assistant.core.errors import ConversationNotFoundError
from slack_assistant.core.logging import get_logger, profile_context

logger = get_logger(__name__)

CONVERSATION_ID_RE = re.compile(r"^[CDG][A-Z0-9]+$")
MAX_SEARCH_PAGES = 20


@dataclass(slots=True)
class ConversationRef:
    id: str
    name: str


@dataclass(slots=True)
class SentMessage:
    ts: str
    conversation_id: str
    text: str


class SlackClientManager:
    """Holds a Web API client per profile and wraps the calls we make."""

    def __init__(self, profiles: Sequence[ProfileConfig], clients: dict[str, Any] | None = None) -> None:
        self.profiles = list(profiles)
        self._clients: dict[str, Any] = dict(clients or {})
        for profile in self.profiles:
            self._clients.setdefault(profile.id, AsyncWebClient(token=profile.user_token))

    def client(self, profile_id: str | None = None) -> Any:
        profile = get_profile(self.profiles, profile_id)
        return self._clients[profile.id]

    async def validate_tokens(self) -> dict[str, str | None]:
        """Run ``auth.test`` for every profile; maps profile id to user name or None."""
        results: dict[str, str | None] = {}
        for profile in self.profiles:
            try:
                auth = await self._clients[profile.id].auth_test()
                results[profile.id] = auth.get("user")
                logger.info(
                    'Profile "%s" authenticated as %s (%s)',
                    profile.id,
                    auth.get("user"),
                    profile.display_name,
                    extra=profile_context(profile.id),
                )
            except SlackApiError as exc:
                results[profile.id] = None
                logger.error('Profile "%s" auth FAILED: %s', profile.id, exc, extra=profile_context(profile.id))
        return results

    async def search_messages(self, profile_id: str, query: str, limit: int = 50) -> list[dict[str, Any]]:
        client = self.client(profile_id)
        matches: list[dict[str, Any]] = []
        page = 1
        while True:
            result = await client.search_messages(
                query=query,
                count=min(limit - len(matches), 100),
                page=page,
                sort="timestamp",
                sort_dir="desc",
            )
            messages = result.get("messages") or {}
            matches.extend(messages.get("matches") or [])
            total_pages = (messages.get("paging") or {}).get("pages", 0)
            if page >= total_pages or len(matches) >= limit or page >= MAX_SEARCH_PAGES:
                break
            page += 1
        return matches[:limit]

    async def search_user_messages(self, profile_id: str, user_id: str, limit: int = 200) -> list[dict[str, Any]]:
        return await self.search_messages(profile_id, f"from:<@{user_id}>", limit)

    async def list_conversations(self, profile_id: str, limit: int = 200) -> list[dict[str, Any]]:
        """Public and private channels the profile is a member of."""
        client = self.client(profile_id)
        conversations: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            result = await client.conversations_list(
                limit=200,
                cursor=cursor,
                types="public_channel,private_channel",
                exclude_archived=True,
            )
            for channel in result.get("channels") or []:
                if channel.get("is_member"):
                    conversations.append(
                        {
                            "id": channel["id"],
                            "name": channel.get("name") or channel["id"],
                            "num_members": channel.get("num_members") or 0,
                        }
                    )
            cursor = (result.get("response_metadata") or {}).get("next_cursor")
            if not cursor or len(conversations) >= limit:
                break
        return conversations[:limit]

    async def resolve_conversation(self, profile_id: str, conversation: str) -> ConversationRef:
        """Turn a conversation id or ``#name`` into an id and display name."""
        if CONVERSATION_ID_RE.match(conversation):
            try:
                info = await self.client(profile_id).conversations_info(channel=conversation)
                name = (info.get("channel") or {}).get("name") or conversation
            except SlackApiError:
                name = conversation
            return ConversationRef(id=conversation, name=name)

        name = conversation.lstrip("#")
        for channel in await self.list_conversations(profile_id, limit=1000):
            if channel["name"] == name:
                return ConversationRef(id=channel["id"], name=channel["name"])
        raise ConversationNotFoundError(
            f'Conversation "{conversation}" not found for profile "{profile_id}". '
            "Make sure the profile is a member of this conversation."
        )

    async def get_history(self, profile_id: str, conversation_id: str, limit: int = 50) -> list[dict[str, Any]]:
        """Latest ``limit`` messages, oldest first."""
        client = self.client(profile_id)
        messages: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            result = await client.conversations_history(
                channel=conversation_id,
                limit=min(limit - len(messages), 100),
                cursor=cursor,
            )
            messages.extend(result.get("messages") or [])
            cursor = (result.get("response_metadata") or {}).get("next_cursor")
            if len(messages) >= limit or not result.get("has_more") or not cursor:
                break
        return list(reversed(messages[:limit]))

    async def get_thread(self, profile_id: str, conversation_id: str, thread_ts: str) -> list[dict[str, Any]]:
        client = self.client(profile_id)
        messages: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            result = await client.conversations_replies(
                channel=conversation_id,
                ts=thread_ts,
                limit=100,
                cursor=cursor,
            )
            messages.extend(result.get("messages") or [])
            cursor = (result.get("response_metadata") or {}).get("next_cursor")
            if not result.get("has_more") or not cursor:
                break
        return messages

    async def post_message(
        self,
        profile_id: str,
        conversation_id: str,
        text: str,
        thread_ts: str | None = None,
    ) -> SentMessage:
        """Post as the user; SDK errors propagate as ``SlackApiError``."""
        result = await self.client(profile_id).chat_postMessage(
            channel=conversation_id,
            text=text,
            thread_ts=thread_ts,
            unfurl_links=False,
            unfurl_media=False,
        )
        return SentMessage(ts=result["ts"], conversation_id=result["channel"], text=text)


__all__ = ["SlackClientManager", "ConversationRef", "SentMessage", "CONVERSATION_ID_RE", "MAX_SEARCH_PAGES"]
