"""CLI entrypoint for the Slack assistant."""

from __future__ import annotations

import asyncio
import json
import os
import signal
from typing import Optional

import requests
import typer

from slack_assistant.core.config import ProfileConfig, Settings, get_settings, load_profiles
from slack_assistant.core.errors import ConfigError, StorageError
from slack_assistant.core.logging import configure_logging, get_logger
from slack_assistant.db.store import EventStore
from slack_assistant.ingest.supervisor import IngestionSupervisor
from slack_assistant.slack.client import SlackClientManager
from slack_assistant.slack.transport import socket_mode_transport

app = typer.Typer(name="slka", help="Slack assistant command-line interface")
watch_app = typer.Typer(name="watch", help="Manage watched conversations")
app.add_typer(watch_app, name="watch")

logger = get_logger(__name__)


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("SLKA_HOST")
    if env_host:
        return env_host.rstrip("/")
    return get_settings().api_host.rstrip("/")


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    try:
        resp = requests.request(method, url, timeout=60, **kwargs)
    except requests.RequestException as exc:
        typer.echo(f"Request failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


@app.command()
def daemon(
    skip_auth: bool = typer.Option(False, "--skip-auth", help="Do not validate tokens before connecting"),
) -> None:
    """Run the ingestion daemon until interrupted."""
    try:
        settings = get_settings()
        configure_logging(use_json=settings.log_json)
        profiles = load_profiles(settings.profiles_path)
    except ConfigError as exc:
        typer.echo(f"Fatal: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    try:
        asyncio.run(_run_daemon(settings, profiles, skip_auth))
    except StorageError as exc:
        typer.echo(f"Fatal: {exc}", err=True)
        raise typer.Exit(code=1) from exc


async def _run_daemon(settings: Settings, profiles: list[ProfileConfig], skip_auth: bool) -> None:
    store = EventStore.open(settings.db_path)
    store.sync_profiles(profiles)
    logger.info("Synced %s profile(s) to database.", len(profiles))

    if not skip_auth:
        await SlackClientManager(profiles).validate_tokens()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    supervisor = IngestionSupervisor(
        store,
        profiles,
        socket_mode_transport,
        refresh_interval=settings.watch_refresh_seconds,
    )
    await supervisor.run(stop)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(5180, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("slack_assistant.app:app", host=host, port=port, reload=reload)


@app.command()
def pending(
    profile: Optional[str] = typer.Option(None, "--profile", help="Restrict to one profile"),
    conversation: Optional[str] = typer.Option(None, "--conversation", help="Restrict to one conversation id"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum messages to return"),
    text: bool = typer.Option(False, "--text", help="Print the formatted summary instead of JSON"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show messages awaiting a reply."""
    params: dict[str, object] = {}
    if profile:
        params["profile"] = profile
    if conversation:
        params["conversation"] = conversation
    if limit is not None:
        params["limit"] = limit
    resp = _request("GET", "/pending", host=host, params=params)
    payload = resp.json()
    typer.echo(payload["summary"] if text else json.dumps(payload, indent=2))


@app.command()
def style(
    profile: str = typer.Argument(..., help="Profile id"),
    refresh: bool = typer.Option(False, "--refresh", help="Re-analyze instead of using the cache"),
    text: bool = typer.Option(False, "--text", help="Print the rendered profile instead of JSON"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show the writing-style fingerprint of a profile."""
    resp = _request("GET", f"/style/{profile}", host=host, params={"refresh": refresh})
    payload = resp.json()
    typer.echo(payload["rendered"] if text else json.dumps(payload, indent=2))


@app.command()
def profiles(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List configured profiles."""
    resp = _request("GET", "/profiles", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def send(
    profile: str = typer.Argument(..., help="Profile id"),
    conversation: str = typer.Argument(..., help="Conversation id or #name"),
    message: str = typer.Argument(..., help="Message text"),
    thread_ts: Optional[str] = typer.Option(None, "--thread", help="Reply inside this thread"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Send a message as the profile's user."""
    payload = {"conversation": conversation, "text": message, "thread_ts": thread_ts}
    resp = _request("POST", f"/messages/{profile}", host=host, json=payload)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def channels(
    profile: str = typer.Argument(..., help="Profile id"),
    limit: int = typer.Option(200, "--limit", help="Maximum channels to list"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List channels the profile is a member of."""
    resp = _request("GET", f"/conversations/{profile}", host=host, params={"limit": limit})
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def read(
    profile: str = typer.Argument(..., help="Profile id"),
    conversation: str = typer.Argument(..., help="Conversation id or #name"),
    limit: int = typer.Option(30, "--limit", help="Maximum messages to return"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show recent messages of a conversation."""
    path = f"/conversations/{profile}/{conversation.lstrip('#')}/messages"
    resp = _request("GET", path, host=host, params={"limit": limit})
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def thread(
    profile: str = typer.Argument(..., help="Profile id"),
    conversation: str = typer.Argument(..., help="Conversation id or #name"),
    thread_ts: str = typer.Argument(..., help="Timestamp of the thread's root message"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show every message of a thread."""
    path = f"/conversations/{profile}/{conversation.lstrip('#')}/threads/{thread_ts}"
    resp = _request("GET", path, host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def search(
    profile: str = typer.Argument(..., help="Profile id"),
    query: str = typer.Argument(..., help="Slack search query"),
    limit: int = typer.Option(50, "--limit", help="Maximum matches to return"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Search messages visible to the profile."""
    resp = _request("GET", f"/search/{profile}", host=host, params={"q": query, "limit": limit})
    typer.echo(json.dumps(resp.json(), indent=2))


@watch_app.command("list")
def list_watch(
    profile: str = typer.Argument(..., help="Profile id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List watched conversations."""
    resp = _request("GET", f"/watch/{profile}", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@watch_app.command("add")
def add_watch(
    profile: str = typer.Argument(..., help="Profile id"),
    conversation: str = typer.Argument(..., help="Conversation id or #name"),
    priority: str = typer.Option("normal", "--priority", help="high, normal or low"),
    description: Optional[str] = typer.Option(None, "--description", help="Why this conversation matters"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Start watching a conversation."""
    payload = {"conversation": conversation, "priority": priority, "description": description}
    resp = _request("POST", f"/watch/{profile}", host=host, json=payload)
    typer.echo(json.dumps(resp.json(), indent=2))


@watch_app.command("remove")
def remove_watch(
    profile: str = typer.Argument(..., help="Profile id"),
    conversation: str = typer.Argument(..., help="Conversation id or #name"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Stop watching a conversation."""
    resp = _request("DELETE", f"/watch/{profile}/{conversation.lstrip('#')}", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    app()
