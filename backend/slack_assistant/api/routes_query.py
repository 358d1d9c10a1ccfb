"""Query API routes: pending replies, style, conversations and search."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from slack_assistant.api.dependencies import (
    get_app_settings,
    get_conversation_service,
    get_profiles,
    get_store,
    get_style_service,
)
from slack_assistant.api.errors import translate_errors
from slack_assistant.core.config import ProfileConfig, Settings, get_profile
from slack_assistant.db.store import EventStore
from slack_assistant.models.dto import (
    ChannelResponse,
    MessagesResponse,
    PendingItem,
    PendingResponse,
    SearchResponse,
    StyleFingerprintModel,
    StyleResponse,
)
from slack_assistant.services.conversations import ConversationService
from slack_assistant.services.pending import format_pending, get_pending
from slack_assistant.style.service import StyleService, format_style

router = APIRouter()


@router.get("/pending", response_model=PendingResponse, summary="Messages awaiting a reply")
def pending(
    profile: str | None = Query(default=None, description="Restrict to one profile"),
    conversation: str | None = Query(default=None, description="Restrict to one conversation id"),
    limit: int | None = Query(default=None, ge=1, le=500),
    store: EventStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> PendingResponse:
    grouped = get_pending(store, profile, conversation, limit or settings.pending_limit)
    return PendingResponse(
        total=sum(len(items) for items in grouped.values()),
        profiles={
            pid: [
                PendingItem(
                    ts=item.message.ts,
                    conversation_id=item.message.conversation_id,
                    conversation_name=item.message.conversation_name,
                    user_id=item.message.user_id,
                    username=item.message.username,
                    text=item.message.text,
                    thread_ts=item.message.thread_ts,
                    priority=item.priority,
                )
                for item in items
            ]
            for pid, items in grouped.items()
        },
        summary=format_pending(grouped, profile),
    )


@router.get("/style/{profile_id}", response_model=StyleResponse, summary="Writing-style fingerprint")
async def style(
    profile_id: str,
    refresh: bool = Query(default=False, description="Re-analyze instead of using the cached fingerprint"),
    service: StyleService = Depends(get_style_service),
) -> StyleResponse:
    with translate_errors():
        result = await service.get_style(profile_id, refresh=refresh)
    fingerprint = None
    samples: list[str] = []
    if result.style is not None:
        fingerprint = StyleFingerprintModel(**result.style.fingerprint.to_dict())
        samples = result.style.sample_messages
    return StyleResponse(
        profile_id=result.profile_id,
        status=result.status,
        source=result.source,
        analyzed=result.analyzed,
        fingerprint=fingerprint,
        sample_messages=samples,
        detail=result.detail,
        rendered=format_style(result),
    )


@router.get(
    "/conversations/{profile_id}/{conversation}/messages",
    response_model=MessagesResponse,
    summary="Recent messages of a conversation",
)
async def conversation_messages(
    profile_id: str,
    conversation: str,
    limit: int = Query(default=30, ge=1, le=500),
    profiles: tuple[ProfileConfig, ...] = Depends(get_profiles),
    service: ConversationService = Depends(get_conversation_service),
) -> MessagesResponse:
    with translate_errors():
        profile = get_profile(list(profiles), profile_id)
        history = await service.read(profile.id, conversation, limit)
    return MessagesResponse(conversation_id=history.conversation_id, source=history.source, messages=history.messages)


@router.get(
    "/conversations/{profile_id}",
    response_model=list[ChannelResponse],
    summary="Channels the profile is a member of",
)
async def conversations(
    profile_id: str,
    limit: int = Query(default=200, ge=1, le=1000),
    profiles: tuple[ProfileConfig, ...] = Depends(get_profiles),
    service: ConversationService = Depends(get_conversation_service),
) -> list[ChannelResponse]:
    with translate_errors():
        profile = get_profile(list(profiles), profile_id)
        channels = await service.list_channels(profile.id, limit)
    return [ChannelResponse(**channel) for channel in channels]


@router.get(
    "/conversations/{profile_id}/{conversation}/threads/{thread_ts}",
    response_model=MessagesResponse,
    summary="Every message of a thread",
)
async def thread_messages(
    profile_id: str,
    conversation: str,
    thread_ts: str,
    profiles: tuple[ProfileConfig, ...] = Depends(get_profiles),
    service: ConversationService = Depends(get_conversation_service),
) -> MessagesResponse:
    with translate_errors():
        profile = get_profile(list(profiles), profile_id)
        thread = await service.read_thread(profile.id, conversation, thread_ts)
    return MessagesResponse(conversation_id=thread.conversation_id, source=thread.source, messages=thread.messages)


@router.get("/search/{profile_id}", response_model=SearchResponse, summary="Search messages visible to the profile")
async def search(
    profile_id: str,
    q: str = Query(..., min_length=1, description="Slack search query, modifiers such as in:#channel allowed"),
    limit: int = Query(default=50, ge=1, le=1000),
    profiles: tuple[ProfileConfig, ...] = Depends(get_profiles),
    service: ConversationService = Depends(get_conversation_service),
) -> SearchResponse:
    with translate_errors():
        profile = get_profile(list(profiles), profile_id)
        matches = await service.search(profile.id, q, limit)
    return SearchResponse(query=q, total=len(matches), matches=matches)


__all__ = ["router"]
