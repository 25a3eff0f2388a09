"""
Periodic ingestion job.

Runs one tick at start-up and then one per interval until the stop event is
set. A tick fetches the upstream dataset, hands it to the payload archive
and publishes it. A failed fetch still publishes an empty dataset; no
exception ever ends the loop.
"""

import asyncio
import logging
from typing import Optional, Protocol

from ..database.sink import RawPayloadSink
from ..models.flight import Dataset
from .aviation import FetchError
from .publisher import PublishResult, SnapshotPublisher

logger = logging.getLogger(__name__)


class DatasetFetcher(Protocol):
    async def fetch(self) -> Dataset: ...


class IngestionJob:
    """Fetch-and-publish loop driven by a fixed interval."""

    def __init__(
        self,
        fetcher: DatasetFetcher,
        publisher: SnapshotPublisher,
        sink: Optional[RawPayloadSink] = None,
        interval_seconds: float = 50 * 60,
    ):
        self.fetcher = fetcher
        self.publisher = publisher
        self.sink = sink
        self.interval_seconds = interval_seconds
        self.ticks = 0

    async def run_once(self) -> PublishResult:
        """
        Execute a single ingestion cycle.

        Returns:
            PublishResult: Outcome of the publish step
        """
        self.ticks += 1
        logger.info(f"Ingestion tick {self.ticks}")

        try:
            dataset = await self.fetcher.fetch()
        except FetchError as e:
            logger.error(f"Ingestion fetch failed, publishing empty dataset: {e}")
            dataset = Dataset()
        else:
            if self.sink is not None:
                self.sink.submit(dataset)

        return await self.publisher.publish(dataset)

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Run ticks until ``stop_event`` is set.

        The stop event is checked between ticks and also interrupts a tick
        that is still in progress.
        """
        logger.info(f"Ingestion job started, interval {self.interval_seconds:.0f}s")

        while not stop_event.is_set():
            await self._tick_until_stopped(stop_event)

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue

        logger.info("Ingestion job stopped")

    async def _tick_until_stopped(self, stop_event: asyncio.Event) -> None:
        tick = asyncio.create_task(self.run_once())
        stopper = asyncio.create_task(stop_event.wait())
        try:
            done, _ = await asyncio.wait({tick, stopper}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            tick.cancel()
            raise
        finally:
            stopper.cancel()

        if tick not in done:
            logger.info("Shutdown requested, abandoning ingestion tick")
            tick.cancel()
            try:
                await tick
            except asyncio.CancelledError:
                pass
            return

        try:
            tick.result()
        except Exception:
            logger.exception("Ingestion tick failed")
