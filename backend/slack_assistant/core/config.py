"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from slack_assistant.core.errors import ConfigError, ProfileNotFoundError
from slack_assistant.core.logging import get_logger

ENV_PREFIX = "SLKA_"
DEFAULT_CONFIG_PATH = Path("~/.config/slack-assistant/config.yaml")
DEFAULT_HOME = Path.home() / ".slack-assistant"

logger = get_logger(__name__)

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("profiles", "path"): "profiles_path",
    ("watch", "refresh_seconds"): "watch_refresh_seconds",
    ("pending", "limit"): "pending_limit",
    ("style", "own_message_limit"): "style_own_message_limit",
    ("style", "local_minimum"): "style_local_minimum",
    ("style", "min_messages"): "style_min_messages",
    ("style", "sample_count"): "style_sample_count",
    ("logging", "json"): "log_json",
    ("api", "host"): "api_host",
}

_TOKEN_PREFIXES: Mapping[str, str] = {
    "user_token": "xoxp-",
    "bot_token": "xoxb-",
    "app_token": "xapp-",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=DEFAULT_HOME / "data" / "slack.db")
    profiles_path: Path = Field(default=DEFAULT_HOME / "profiles.yaml")
    watch_refresh_seconds: float = Field(default=60.0, gt=0)
    pending_limit: int = Field(default=20, ge=1)
    style_own_message_limit: int = 500
    style_local_minimum: int = 50
    style_min_messages: int = 10
    style_sample_count: int = 50
    log_json: bool = True
    api_host: str = "http://127.0.0.1:5180"

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", "profiles_path", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("paths must be a path or string")

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid settings: {exc}") from exc

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


class ProfileConfig(BaseModel):
    """One authenticated workspace identity and its credentials."""

    id: str
    display_name: str
    user_token: str
    bot_token: str
    app_token: str
    user_id: str
    is_primary: bool = False

    model_config = {"extra": "ignore", "frozen": True}

    @field_validator("id", "display_name", "user_token", "bot_token", "app_token", "user_id")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("user_token", "bot_token", "app_token")
    @classmethod
    def _token_prefix(cls, value: str, info) -> str:
        prefix = _TOKEN_PREFIXES[info.field_name]
        if not value.startswith(prefix):
            raise ValueError(f'must start with "{prefix}", got "{value[:5]}..."')
        return value


def load_profiles(path: Path) -> list[ProfileConfig]:
    """Parse and validate the profile file; exactly one profile ends up primary."""
    path = path.expanduser()
    if not path.exists():
        raise ConfigError(f"Profiles file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc

    entries = raw.get("profiles") if isinstance(raw, Mapping) else None
    if not isinstance(entries, list) or not entries:
        raise ConfigError(f'{path} must contain a "profiles" list with at least one profile.')

    profiles: list[ProfileConfig] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise ConfigError(f"Profile at index {index} must be a mapping.")
        try:
            profiles.append(ProfileConfig(**entry))
        except ValidationError as exc:
            raise ConfigError(f"Profile at index {index} is invalid: {exc}") from exc

    ids = [profile.id for profile in profiles]
    duplicates = sorted({pid for pid in ids if ids.count(pid) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate profile ids: {', '.join(duplicates)}")

    primaries = [profile for profile in profiles if profile.is_primary]
    if len(primaries) > 1:
        raise ConfigError(
            f"Multiple profiles are marked as primary: {', '.join(p.id for p in primaries)}. Only one can be primary."
        )
    if not primaries:
        profiles[0] = profiles[0].model_copy(update={"is_primary": True})
        logger.warning('No primary profile set. Defaulting to "%s".', profiles[0].id)
    return profiles


def get_profile(profiles: list[ProfileConfig], profile_id: str | None = None) -> ProfileConfig:
    """Return the named profile, or the primary profile when no id is given."""
    if not profile_id:
        for profile in profiles:
            if profile.is_primary:
                return profile
        raise ProfileNotFoundError("No primary profile configured.")
    for profile in profiles:
        if profile.id == profile_id:
            return profile
    available = ", ".join(profile.id for profile in profiles)
    raise ProfileNotFoundError(f'Profile "{profile_id}" not found. Available profiles: {available}')


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with SLKA_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "ProfileConfig", "get_settings", "load_profiles", "get_profile"]
