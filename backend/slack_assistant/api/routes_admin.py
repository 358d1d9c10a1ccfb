"""Administrative routes: profiles, watched conversations, metrics."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from slack_assistant.api.dependencies import get_conversation_service, get_profiles, get_store
from slack_assistant.api.errors import translate_errors
from slack_assistant.core.config import ProfileConfig, get_profile
from slack_assistant.core.metrics import metrics_response
from slack_assistant.db.store import EventStore
from slack_assistant.models.dto import ProfileResponse, WatchCreateRequest, WatchResponse
from slack_assistant.services.conversations import ConversationService

router = APIRouter()


@router.get("/profiles", response_model=list[ProfileResponse], summary="List configured profiles")
def list_profiles(store: EventStore = Depends(get_store)) -> list[ProfileResponse]:
    return [
        ProfileResponse(
            id=profile.id,
            display_name=profile.display_name,
            user_id=profile.user_id,
            is_primary=profile.is_primary,
        )
        for profile in store.list_profiles()
    ]


@router.get("/watch/{profile_id}", response_model=list[WatchResponse], summary="List watched conversations")
def list_watch(
    profile_id: str,
    profiles: tuple[ProfileConfig, ...] = Depends(get_profiles),
    service: ConversationService = Depends(get_conversation_service),
) -> list[WatchResponse]:
    with translate_errors():
        profile = get_profile(list(profiles), profile_id)
    return [
        WatchResponse(
            conversation_id=watched.conversation_id,
            name=watched.name,
            priority=watched.priority,
            description=watched.description,
        )
        for watched in service.list_watched(profile.id)
    ]


@router.post("/watch/{profile_id}", response_model=WatchResponse, summary="Watch a conversation")
async def add_watch(
    profile_id: str,
    request: WatchCreateRequest,
    profiles: tuple[ProfileConfig, ...] = Depends(get_profiles),
    service: ConversationService = Depends(get_conversation_service),
) -> WatchResponse:
    with translate_errors():
        profile = get_profile(list(profiles), profile_id)
        resolved = await service.add_watch(profile.id, request.conversation, request.priority, request.description)
    return WatchResponse(
        conversation_id=resolved.id,
        name=resolved.name,
        priority=request.priority,
        description=request.description,
    )


@router.delete("/watch/{profile_id}/{conversation}", summary="Stop watching a conversation")
async def remove_watch(
    profile_id: str,
    conversation: str,
    profiles: tuple[ProfileConfig, ...] = Depends(get_profiles),
    service: ConversationService = Depends(get_conversation_service),
) -> dict[str, str]:
    with translate_errors():
        profile = get_profile(list(profiles), profile_id)
        resolved = await service.remove_watch(profile.id, conversation)
    return {"status": "ok", "conversation_id": resolved.id, "name": resolved.name}


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
