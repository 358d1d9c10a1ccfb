"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

PriorityLiteral = Literal["high", "normal", "low"]


class ProfileResponse(BaseModel):
    id: str
    display_name: str
    user_id: str
    is_primary: bool


class PendingItem(BaseModel):
    ts: str
    conversation_id: str
    conversation_name: str | None = None
    user_id: str
    username: str | None = None
    text: str
    thread_ts: str | None = None
    priority: PriorityLiteral


class PendingResponse(BaseModel):
    total: int
    profiles: dict[str, list[PendingItem]]
    summary: str


class StyleFingerprintModel(BaseModel):
    avg_message_length: int
    emoji_frequency: float
    uses_exclamation: bool
    uses_ellipsis: bool
    capitalization_style: Literal["lowercase", "normal", "uppercase"]
    greeting_patterns: list[str]
    sign_off_patterns: list[str]
    common_phrases: list[str]
    formality_level: Literal["casual", "neutral", "formal"]
    typical_response_length: Literal["short", "medium", "long"]


class StyleResponse(BaseModel):
    profile_id: str
    status: Literal["ok", "insufficient_data", "fetch_failed"]
    source: Literal["cache", "local", "remote"] | None = None
    analyzed: int = 0
    fingerprint: StyleFingerprintModel | None = None
    sample_messages: list[str] = Field(default_factory=list)
    detail: str | None = None
    rendered: str


class WatchCreateRequest(BaseModel):
    conversation: str = Field(description="Conversation id or #name")
    priority: PriorityLiteral = "normal"
    description: str | None = None


class WatchResponse(BaseModel):
    conversation_id: str
    name: str
    priority: PriorityLiteral
    description: str | None = None


class MessagesResponse(BaseModel):
    conversation_id: str
    source: Literal["cache", "api"]
    messages: list[dict[str, Any]]


class ChannelResponse(BaseModel):
    id: str
    name: str
    num_members: int = 0


class SearchResponse(BaseModel):
    query: str
    total: int
    matches: list[dict[str, Any]]


class SendRequest(BaseModel):
    conversation: str
    text: str = Field(min_length=1)
    thread_ts: str | None = None


class SendResponse(BaseModel):
    ok: bool = True
    ts: str
    conversation_id: str
    text: str


__all__ = [
    "ProfileResponse",
    "PendingItem",
    "PendingResponse",
    "StyleFingerprintModel",
    "StyleResponse",
    "WatchCreateRequest",
    "WatchResponse",
    "MessagesResponse",
    "ChannelResponse",
    "SearchResponse",
    "SendRequest",
    "SendResponse",
]
