"""Settings and profile loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from slack_assistant.core.config import Settings, get_profile, load_profiles
from slack_assistant.core.errors import ConfigError, ProfileNotFoundError

PROFILE = """\
  - id: {id}
    display_name: {id}
    user_token: xoxp-1
    bot_token: xoxb-1
    app_token: xapp-1
    user_id: U_{id}
"""


def _write(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "profiles.yaml"
    path.write_text(body, encoding="utf-8")
    return path


def test_first_profile_defaults_to_primary(tmp_path: Path) -> None:
    path = _write(tmp_path, "profiles:\n" + PROFILE.format(id="a") + PROFILE.format(id="b"))
    profiles = load_profiles(path)
    assert [p.is_primary for p in profiles] == [True, False]
    assert get_profile(profiles).id == "a"
    assert get_profile(profiles, "b").id == "b"


def test_json_profiles_are_accepted(tmp_path: Path) -> None:
    body = (
        '{"profiles": [{"id": "a", "display_name": "A", "user_token": "xoxp-1", '
        '"bot_token": "xoxb-1", "app_token": "xapp-1", "user_id": "U1", "is_primary": true}]}'
    )
    [profile] = load_profiles(_write(tmp_path, body))
    assert profile.is_primary is True


def test_multiple_primaries_rejected(tmp_path: Path) -> None:
    body = "profiles:\n" + PROFILE.format(id="a") + "    is_primary: true\n" + PROFILE.format(id="b") + "    is_primary: true\n"
    with pytest.raises(ConfigError, match="Multiple profiles"):
        load_profiles(_write(tmp_path, body))


def test_duplicate_ids_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Duplicate"):
        load_profiles(_write(tmp_path, "profiles:\n" + PROFILE.format(id="a") * 2))


@pytest.mark.parametrize(
    "body",
    [
        "profiles: []\n",
        "something_else: 1\n",
        "profiles:\n  - just-a-string\n",
        "profiles:\n" + PROFILE.format(id="a").replace("xoxb-1", "xoxp-1"),
        "profiles:\n" + PROFILE.format(id="a").replace("user_id: U_a", "user_id: ''"),
        "profiles: [unterminated\n",
    ],
)
def test_invalid_profiles_rejected(tmp_path: Path, body: str) -> None:
    with pytest.raises(ConfigError):
        load_profiles(_write(tmp_path, body))


def test_missing_profiles_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_profiles(tmp_path / "missing.yaml")


def test_unknown_profile(tmp_path: Path) -> None:
    profiles = load_profiles(_write(tmp_path, "profiles:\n" + PROFILE.format(id="a")))
    with pytest.raises(ProfileNotFoundError, match="Available profiles: a"):
        get_profile(profiles, "zzz")


def test_settings_from_yaml_and_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("watch:\n  refresh_seconds: 15\npending:\n  limit: 5\nstyle:\n  min_messages: 3\n")
    monkeypatch.setenv("SLKA_PENDING_LIMIT", "7")

    settings = Settings.from_yaml(config)
    assert settings.watch_refresh_seconds == 15
    assert settings.style_min_messages == 3
    assert settings.pending_limit == 7
    assert settings.db_path == tmp_path / "slack.db"


def test_invalid_settings_raise_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SLKA_WATCH_REFRESH_SECONDS", "0")
    with pytest.raises(ConfigError):
        Settings.from_yaml(tmp_path / "absent.yaml")
