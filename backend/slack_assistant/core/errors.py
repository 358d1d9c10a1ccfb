"""Exception types shared across the assistant."""

from __future__ import annotations


class SlackAssistantError(Exception):
    """Base class for all assistant errors."""


class ConfigError(SlackAssistantError):
    """Settings or profile configuration is missing or invalid."""


class StorageError(SlackAssistantError):
    """The message store could not be opened or initialised."""


class ProfileNotFoundError(SlackAssistantError):
    pass


class ConversationNotFoundError(SlackAssistantError):
    pass


class TransportError(SlackAssistantError):
    """The streaming connection could not be established."""


__all__ = [
    "SlackAssistantError",
    "ConfigError",
    "StorageError",
    "ProfileNotFoundError",
    "ConversationNotFoundError",
    "TransportError",
]
