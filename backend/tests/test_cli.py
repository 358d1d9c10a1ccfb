"""CLI commands against a stubbed HTTP API."""

from __future__ import annotations

import json
from typing import Any

import pytest
from typer.testing import CliRunner

from slack_assistant.cli import main as cli

runner = CliRunner()


class StubResponse:
    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = json.dumps(payload)

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        return self._payload


class Recorder(list):
    def __init__(self) -> None:
        super().__init__()
        self.responses: dict[str, StubResponse] = {}

    def request(self, method: str, url: str, timeout: int, **kwargs) -> StubResponse:
        self.append({"method": method, "url": url, **kwargs})
        return self.responses.get(url, StubResponse(200, {"summary": "All caught up!", "status": "ok"}))


@pytest.fixture
def calls(monkeypatch: pytest.MonkeyPatch) -> Recorder:
    recorder = Recorder()
    monkeypatch.setattr(cli.requests, "request", recorder.request)
    return recorder


def test_pending_prints_summary_with_text_flag(calls) -> None:
    result = runner.invoke(cli.app, ["pending", "--profile", "work", "--text"])
    assert result.exit_code == 0
    assert result.output.strip() == "All caught up!"
    assert calls[0]["url"] == "http://127.0.0.1:5180/pending"
    assert calls[0]["params"] == {"profile": "work"}


def test_watch_add_posts_body(calls, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SLKA_HOST", "http://api.local:9000/")
    result = runner.invoke(cli.app, ["watch", "add", "work", "#general", "--priority", "high"])
    assert result.exit_code == 0
    assert calls[0]["method"] == "POST"
    assert calls[0]["url"] == "http://api.local:9000/watch/work"
    assert calls[0]["json"] == {"conversation": "#general", "priority": "high", "description": None}


def test_request_failure_exits_with_code_one(calls) -> None:
    calls.responses["http://127.0.0.1:5180/style/nobody"] = StubResponse(404, {"detail": "not found"})
    result = runner.invoke(cli.app, ["style", "nobody"])
    assert result.exit_code == 1


def test_read_commands_hit_conversation_routes(calls) -> None:
    assert runner.invoke(cli.app, ["channels", "work"]).exit_code == 0
    assert runner.invoke(cli.app, ["read", "work", "#general", "--limit", "5"]).exit_code == 0
    assert runner.invoke(cli.app, ["thread", "work", "#general", "1700000001.000000"]).exit_code == 0

    assert [call["url"] for call in calls] == [
        "http://127.0.0.1:5180/conversations/work",
        "http://127.0.0.1:5180/conversations/work/general/messages",
        "http://127.0.0.1:5180/conversations/work/general/threads/1700000001.000000",
    ]
    assert calls[0]["params"] == {"limit": 200}
    assert calls[1]["params"] == {"limit": 5}


def test_search_passes_query_and_limit(calls) -> None:
    calls.responses["http://127.0.0.1:5180/search/work"] = StubResponse(
        200, {"query": "deploy", "total": 1, "matches": [{"text": "deploy finished"}]}
    )
    result = runner.invoke(cli.app, ["search", "work", "deploy", "--limit", "10"])
    assert result.exit_code == 0
    assert json.loads(result.output)["total"] == 1
    assert calls[0]["method"] == "GET"
    assert calls[0]["params"] == {"q": "deploy", "limit": 10}
