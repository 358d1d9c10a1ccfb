"""Per-profile snapshot of watched conversation ids."""

from __future__ import annotations

import asyncio

from slack_assistant.core.logging import get_logger, profile_context
from slack_assistant.core.metrics import WATCH_REFRESH_FAILURES
from slack_assistant.db.store import EventStore

logger = get_logger(__name__)


class WatchSetCache:
    """Read-only copy of a profile's watch set, refreshed on a timer.

    Lookups never touch storage. A failed refresh keeps the previous snapshot.
    """

    def __init__(self, store: EventStore, profile_id: str, refresh_interval: float = 60.0) -> None:
        self.store = store
        self.profile_id = profile_id
        self.refresh_interval = refresh_interval
        self._ids: frozenset[str] = frozenset()
        self._task: asyncio.Task[None] | None = None

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def snapshot(self) -> frozenset[str]:
        return self._ids

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def load(self) -> None:
        """Populate the snapshot; storage errors propagate to the caller."""
        self._ids = frozenset(self.store.get_watched_ids(self.profile_id))

    def refresh(self) -> bool:
        try:
            ids = self.store.get_watched_ids(self.profile_id)
        except Exception as exc:
            WATCH_REFRESH_FAILURES.labels(profile=self.profile_id).inc()
            logger.error(
                "Failed to refresh watched conversations, keeping %s cached: %s",
                len(self._ids),
                exc,
                extra=profile_context(self.profile_id),
            )
            return False
        self._ids = frozenset(ids)
        return True

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"watch-refresh:{self.profile_id}")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped watch refresh", extra=profile_context(self.profile_id))

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            await asyncio.to_thread(self.refresh)


__all__ = ["WatchSetCache"]
