"""Outbound message routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from slack_assistant.api.dependencies import get_conversation_service, get_profiles
from slack_assistant.api.errors import translate_errors
from slack_assistant.core.config import ProfileConfig, get_profile
from slack_assistant.models.dto import SendRequest, SendResponse
from slack_assistant.services.conversations import ConversationService

router = APIRouter()


@router.post("/{profile_id}", response_model=SendResponse, summary="Send a message as the profile's user")
async def send_message(
    profile_id: str,
    request: SendRequest,
    profiles: tuple[ProfileConfig, ...] = Depends(get_profiles),
    service: ConversationService = Depends(get_conversation_service),
) -> SendResponse:
    with translate_errors():
        profile = get_profile(list(profiles), profile_id)
        sent = await service.send(profile.id, profile.user_id, request.conversation, request.text, request.thread_ts)
    return SendResponse(ts=sent.ts, conversation_id=sent.conversation_id, text=sent.text)


__all__ = ["router"]
