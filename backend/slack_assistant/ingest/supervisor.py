"""Run one ingestion pipeline per profile with isolated failures."""

from __future__ import annotations

import asyncio
from typing import Callable, Sequence

from slack_assistant.core.config import ProfileConfig
from slack_assistant.core.logging import get_logger
from slack_assistant.core.metrics import PIPELINES_CONNECTED
from slack_assistant.db.store import EventStore
from slack_assistant.ingest.pipeline import IngestionPipeline
from slack_assistant.ingest.types import StartOutcome, StartReport
from slack_assistant.slack.transport import StreamingTransport

logger = get_logger(__name__)

TransportFactory = Callable[[ProfileConfig], StreamingTransport]


class IngestionSupervisor:
    """Start, hold and shut down the per-profile pipelines.

    Owns the store handle for the lifetime of the daemon and closes it last.
    """

    def __init__(
        self,
        store: EventStore,
        profiles: Sequence[ProfileConfig],
        transport_factory: TransportFactory,
        refresh_interval: float = 60.0,
    ) -> None:
        self.store = store
        self.profiles = list(profiles)
        self.transport_factory = transport_factory
        self.refresh_interval = refresh_interval
        self.pipelines: dict[str, IngestionPipeline] = {}
        self._stopped = False

    async def start(self) -> StartReport:
        logger.info("Starting with %s profile(s)...", len(self.profiles))
        outcomes = await asyncio.gather(*(self._start_one(profile) for profile in self.profiles))
        report = StartReport(outcomes=list(outcomes))
        PIPELINES_CONNECTED.set(len(report.connected))
        if report.connected:
            logger.info(report.summary())
        else:
            logger.warning(report.summary())
        return report

    async def _start_one(self, profile: ProfileConfig) -> StartOutcome:
        try:
            logger.info('Connecting profile "%s"...', profile.id)
            pipeline = IngestionPipeline(
                profile,
                self.store,
                self.transport_factory(profile),
                refresh_interval=self.refresh_interval,
            )
            await pipeline.start()
        except Exception as exc:
            logger.error('Failed to start profile "%s": %s', profile.id, exc)
            return StartOutcome(profile_id=profile.id, connected=False, detail=str(exc))
        self.pipelines[profile.id] = pipeline
        logger.info('Profile "%s" connected successfully.', profile.id)
        return StartOutcome(profile_id=profile.id, connected=True)

    async def shutdown(self) -> None:
        """Stop refresh timers, then disconnect transports, then close the store."""
        if self._stopped:
            return
        self._stopped = True
        logger.info("Shutting down...")

        for profile_id, pipeline in self.pipelines.items():
            try:
                await pipeline.stop_refresh()
            except Exception as exc:
                logger.error('Error stopping refresh for "%s": %s', profile_id, exc)

        for profile_id, pipeline in self.pipelines.items():
            try:
                await pipeline.disconnect()
                logger.info('Disconnected profile "%s".', profile_id)
            except Exception as exc:
                logger.error('Error disconnecting "%s": %s', profile_id, exc)
        PIPELINES_CONNECTED.set(0)

        try:
            self.store.close()
            logger.info("Database closed.")
        except Exception as exc:
            logger.error("Error closing database: %s", exc)

    async def run(self, stop: asyncio.Event) -> StartReport:
        """Start everything, wait for ``stop``, then shut down."""
        try:
            report = await self.start()
            await stop.wait()
        finally:
            await self.shutdown()
        return report


__all__ = ["IngestionSupervisor", "TransportFactory"]
