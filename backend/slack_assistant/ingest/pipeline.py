"""Per-profile ingestion: acknowledge, filter, classify, persist."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

from slack_assistant.core.config import ProfileConfig
from slack_assistant.core.logging import get_logger, profile_context
from slack_assistant.core.metrics import (
    ACK_FAILURES,
    EVENTS_DISCARDED,
    EVENTS_RECEIVED,
    MESSAGES_STORED,
    NEEDS_REPLY_FLAGGED,
)
from slack_assistant.db.store import EventStore
from slack_assistant.ingest.classifier import classify, is_discardable
from slack_assistant.ingest.types import AckCallback, IngestStats, LifecycleState, MessageEvent
from slack_assistant.ingest.watch_cache import WatchSetCache
from slack_assistant.models.entities import NewMessage
from slack_assistant.slack.transport import StreamingTransport

logger = get_logger(__name__)


class IngestionPipeline:
    """Consume one profile's event stream into the store.

    Events are handled one at a time in delivery order. Failures are
    contained to the event (or, at startup, to this profile).
    """

    def __init__(
        self,
        profile: ProfileConfig,
        store: EventStore,
        transport: StreamingTransport,
        refresh_interval: float = 60.0,
    ) -> None:
        self.profile = profile
        self.store = store
        self.transport = transport
        self.watch_set = WatchSetCache(store, profile.id, refresh_interval=refresh_interval)
        self.stats = IngestStats()
        self.state = LifecycleState.DISCONNECTED
        self._log_extra = profile_context(profile.id)
        transport.on_message(self.handle_event)
        transport.on_lifecycle(self._on_lifecycle)

    @property
    def profile_id(self) -> str:
        return self.profile.id

    async def start(self) -> None:
        """Load the watch set, start its refresh timer, then connect."""
        await asyncio.to_thread(self.watch_set.load)
        logger.info("Watching %s conversations", len(self.watch_set), extra=self._log_extra)
        self.watch_set.start()
        try:
            await self.transport.connect()
        except BaseException:
            await self.watch_set.stop()
            raise

    async def stop_refresh(self) -> None:
        await self.watch_set.stop()

    async def disconnect(self) -> None:
        try:
            await self.transport.disconnect()
        except Exception as exc:
            logger.error("Error disconnecting: %s", exc, extra=self._log_extra)
        self.state = LifecycleState.DISCONNECTED

    async def stop(self) -> None:
        """Stop the refresh timer strictly before tearing down the connection."""
        await self.stop_refresh()
        await self.disconnect()

    async def handle_event(self, payload: Mapping[str, Any], ack: AckCallback) -> None:
        EVENTS_RECEIVED.labels(profile=self.profile_id).inc()
        self.stats.received += 1
        try:
            await ack()
        except Exception as exc:
            ACK_FAILURES.labels(profile=self.profile_id).inc()
            logger.warning("Failed to acknowledge event: %s", exc, extra=self._log_extra)

        try:
            await asyncio.to_thread(self.process, MessageEvent.from_payload(payload))
        except Exception:
            self.stats.failed += 1
            logger.exception("Error processing message", extra=self._log_extra)

    def process(self, event: MessageEvent) -> bool:
        """Filter, classify and store one event. Returns True when a row was written."""
        if event.type != "message":
            return self._discard("not_message")
        if is_discardable(event):
            return self._discard("subtype_or_empty")
        if event.conversation_id not in self.watch_set:
            return self._discard("unwatched")

        own_user_id = self.profile.user_id
        is_own = event.author_id == own_user_id
        needs_reply = not is_own and classify(event, own_user_id, self._has_participated)

        inserted = self.store.insert_if_absent(
            NewMessage(
                ts=event.ts,
                profile_id=self.profile_id,
                conversation_id=event.conversation_id,
                user_id=event.author_id or "",
                username=event.author_display_name,
                text=event.text or "",
                thread_ts=event.thread_ts,
                is_own_message=is_own,
                needs_reply=needs_reply,
            )
        )
        if not inserted:
            self.stats.duplicates += 1
            logger.debug("Duplicate delivery of %s in %s", event.ts, event.conversation_id, extra=self._log_extra)
            return False

        self.stats.stored += 1
        MESSAGES_STORED.labels(profile=self.profile_id).inc()
        if needs_reply:
            self.stats.flagged += 1
            NEEDS_REPLY_FLAGGED.labels(profile=self.profile_id).inc()
            logger.info(
                'Needs reply in %s: "%s"',
                event.conversation_id,
                (event.text or "")[:80],
                extra={**self._log_extra, "ctx_conversation": event.conversation_id, "ctx_ts": event.ts},
            )
        return True

    def _has_participated(self, conversation_id: str, thread_ts: str, user_id: str) -> bool:
        return self.store.has_participated(self.profile_id, conversation_id, thread_ts, user_id)

    def _discard(self, reason: str) -> bool:
        self.stats.discarded += 1
        EVENTS_DISCARDED.labels(profile=self.profile_id, reason=reason).inc()
        return False

    def _on_lifecycle(self, state: LifecycleState) -> None:
        self.state = state
        logger.info("Socket Mode %s", state.value, extra=self._log_extra)


__all__ = ["IngestionPipeline"]
