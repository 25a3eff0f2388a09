"""
Fire-and-forget archive of raw flights payloads.

``submit`` returns immediately; the insert runs in a worker thread and its
outcome is only logged. Nothing in the caching path waits on it.
"""

import asyncio
import logging
from typing import Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from ..models.flight import Dataset
from .config import DatabaseConfig
from .models import FlightPayload

logger = logging.getLogger(__name__)


class RawPayloadSink:
    """Archives each fetched dataset as one ``flight_payloads`` row."""

    def __init__(self, db_config: Optional[DatabaseConfig] = None):
        self.db_config = db_config
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.db_config is not None

    def submit(self, dataset: Dataset) -> Optional[asyncio.Task]:
        """Schedule the insert and return without waiting for it."""
        if not self.enabled:
            return None

        payload = dataset.to_store_json()
        task = asyncio.create_task(asyncio.to_thread(self._insert, payload, len(dataset.data)))
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _insert(self, payload: str, record_count: int) -> int:
        with self.db_config.get_session_context() as session:
            row = FlightPayload(payload=payload, record_count=record_count)
            session.add(row)
            session.flush()
            return row.payload_id

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            logger.debug(f"Archived flights payload as row {task.result()}")
        elif isinstance(error, SQLAlchemyError):
            logger.warning(f"Archiving flights payload failed: {error}")
        else:
            logger.error(f"Unexpected error archiving flights payload: {error!r}")

    async def drain(self) -> None:
        """Wait for inserts still in flight."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        if self.db_config is not None:
            self.db_config.close()
