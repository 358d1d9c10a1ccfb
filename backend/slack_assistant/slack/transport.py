"""Streaming transports delivering workspace events to a pipeline."""

from __future__ import annotations

import asyncio

import orjson
from typing import Any, Awaitable, Callable, Mapping, Protocol

from slack_sdk.socket_mode.aiohttp import SocketModeClient
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse
from slack_sdk.web.async_client import AsyncWebClient

from slack_assistant.core.config import ProfileConfig
from slack_assistant.core.errors import TransportError
from slack_assistant.core.logging import get_logger, profile_context
from slack_assistant.ingest.types import AckCallback, LifecycleState

logger = get_logger(__name__)

MessageHandler = Callable[[Mapping[str, Any], AckCallback], Awaitable[None]]
LifecycleHandler = Callable[[LifecycleState], None]


class StreamingTransport(Protocol):
    """What a pipeline needs from a persistent event connection.

    Message handlers are awaited one at a time in delivery order.
    """

    def on_message(self, handler: MessageHandler) -> None: ...

    def on_lifecycle(self, handler: LifecycleHandler) -> None: ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...


class SocketModeTransport:
    """Slack Socket Mode connection bound to one profile's app token.

    The SDK runs listeners concurrently, so requests are queued as they
    arrive and a single dispatcher task hands them to the handler in order.
    Reconnects are performed by the SDK; this class only reports them. A
    dropped socket reports ``reconnecting`` and the next ``hello`` from Slack
    reports ``connected`` again.
    """

    def __init__(self, profile: ProfileConfig, client: SocketModeClient | None = None) -> None:
        self.profile_id = profile.id
        self._client = client or SocketModeClient(
            app_token=profile.app_token,
            web_client=AsyncWebClient(token=profile.bot_token),
            auto_reconnect_enabled=True,
        )
        self._client.socket_mode_request_listeners.append(self._on_request)
        self._client.on_close_listeners.append(self._on_close)
        self._client.on_message_listeners.append(self._on_raw_message)
        self._message_handlers: list[MessageHandler] = []
        self._lifecycle_handlers: list[LifecycleHandler] = []
        self._queue: asyncio.Queue[SocketModeRequest] | None = None
        self._dispatcher: asyncio.Task[None] | None = None
        self._closing = False
        self._state: LifecycleState | None = None

    def on_message(self, handler: MessageHandler) -> None:
        self._message_handlers.append(handler)

    def on_lifecycle(self, handler: LifecycleHandler) -> None:
        self._lifecycle_handlers.append(handler)

    async def connect(self) -> None:
        self._closing = False
        self._queue = asyncio.Queue()
        self._dispatcher = asyncio.create_task(self._dispatch(), name=f"socket-dispatch:{self.profile_id}")
        self._notify(LifecycleState.CONNECTING)
        try:
            await self._client.connect()
        except Exception as exc:
            await self._stop_dispatcher()
            raise TransportError(f'Socket Mode connection failed for "{self.profile_id}": {exc}') from exc
        self._notify(LifecycleState.CONNECTED)

    async def disconnect(self) -> None:
        self._closing = True
        self._notify(LifecycleState.DISCONNECTING)
        try:
            await self._client.disconnect()
            await self._client.close()
        finally:
            await self._stop_dispatcher()
            self._notify(LifecycleState.DISCONNECTED)

    async def _on_request(self, client: SocketModeClient, req: SocketModeRequest) -> None:
        if req.type != "events_api" or self._queue is None:
            await client.send_socket_mode_response(SocketModeResponse(envelope_id=req.envelope_id))
            return
        self._queue.put_nowait(req)

    async def _on_close(self, *args: Any) -> None:
        if not self._closing:
            self._notify(LifecycleState.RECONNECTING)

    async def _on_raw_message(self, message: Any) -> None:
        data = getattr(message, "data", message)
        if not isinstance(data, (str, bytes)):
            return
        try:
            body = orjson.loads(data)
        except orjson.JSONDecodeError:
            return
        if isinstance(body, dict) and body.get("type") == "hello" and not self._closing:
            self._notify(LifecycleState.CONNECTED)

    async def _dispatch(self) -> None:
        assert self._queue is not None
        while True:
            req = await self._queue.get()
            event = (req.payload or {}).get("event") or {}
            ack = self._make_ack(req.envelope_id)
            for handler in self._message_handlers:
                try:
                    await handler(event, ack)
                except Exception:
                    logger.exception("Message handler failed", extra=profile_context(self.profile_id))

    def _make_ack(self, envelope_id: str) -> AckCallback:
        async def ack() -> None:
            await self._client.send_socket_mode_response(SocketModeResponse(envelope_id=envelope_id))

        return ack

    async def _stop_dispatcher(self) -> None:
        task, self._dispatcher = self._dispatcher, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _notify(self, state: LifecycleState) -> None:
        if state is self._state:
            return
        self._state = state
        for handler in self._lifecycle_handlers:
            handler(state)


def socket_mode_transport(profile: ProfileConfig) -> StreamingTransport:
    return SocketModeTransport(profile)


__all__ = ["StreamingTransport", "SocketModeTransport", "MessageHandler", "LifecycleHandler", "socket_mode_transport"]
