"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from slack_assistant.core.config import ProfileConfig, Settings, get_settings, load_profiles
from slack_assistant.db.store import EventStore
from slack_assistant.services.conversations import ConversationService
from slack_assistant.slack.client import SlackClientManager
from slack_assistant.style.service import StyleService

_STORE: EventStore | None = None
_CLIENTS: SlackClientManager | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


@lru_cache(maxsize=1)
def get_profiles() -> tuple[ProfileConfig, ...]:
    return tuple(load_profiles(get_app_settings().profiles_path))


def get_store() -> EventStore:
    global _STORE
    if _STORE is None:
        store = EventStore.open(get_app_settings().db_path)
        store.sync_profiles(get_profiles())
        _STORE = store
    return _STORE


def get_clients() -> SlackClientManager:
    global _CLIENTS
    if _CLIENTS is None:
        _CLIENTS = SlackClientManager(get_profiles())
    return _CLIENTS


def get_style_service() -> StyleService:
    return StyleService(
        store=get_store(),
        clients=get_clients(),
        profiles=get_profiles(),
        settings=get_app_settings(),
    )


def get_conversation_service() -> ConversationService:
    return ConversationService(store=get_store(), clients=get_clients())


def reset() -> None:
    """Drop cached singletons, closing the store."""
    global _STORE, _CLIENTS
    if _STORE is not None:
        _STORE.close()
    _STORE = None
    _CLIENTS = None
    get_app_settings.cache_clear()
    get_profiles.cache_clear()


__all__ = [
    "get_app_settings",
    "get_profiles",
    "get_store",
    "get_clients",
    "get_style_service",
    "get_conversation_service",
    "reset",
]
