"""
Snapshot publisher.

Writes a freshly fetched dataset as the canonical document, as an
immutable timestamped snapshot referenced from a daily index, and advances
the version token that scopes every query cache key. Each store call is
attempted independently; a failed write is logged and recorded in the
result but never stops the remaining ones.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from ..cache.config import DocumentStoreError
from ..cache.store import DocumentStore
from ..cache.utils import CacheKeyBuilder, CachePolicy, utc_now, version_token
from ..models.flight import Dataset

logger = logging.getLogger(__name__)


@dataclass
class PublishResult:
    """Outcome of one publish cycle."""

    version: str
    canonical_key: str
    snapshot_key: str
    index_key: str
    record_count: int
    published_at: datetime
    completed_steps: List[str] = field(default_factory=list)
    failed_steps: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_steps


class SnapshotPublisher:
    """
    Publishes datasets to the document store.

    Concurrent publishes are safe: snapshot and index keys are derived from
    the publish second, so only the canonical key and the version marker
    see last-writer-wins.
    """

    def __init__(
        self,
        store: DocumentStore,
        policy: Optional[CachePolicy] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.policy = policy or CachePolicy()
        self.keys = CacheKeyBuilder(self.policy.prefix)
        self._clock = clock

    async def publish(self, dataset: Dataset) -> PublishResult:
        """
        Publish ``dataset`` and advance the version token.

        Args:
            dataset: Fully materialized dataset, possibly empty

        Returns:
            PublishResult: Keys written and per-step success
        """
        now = self._clock()
        stamped = dataset.model_copy(update={"ingested_at": now})
        document = stamped.to_store_json()

        result = PublishResult(
            version=version_token(now),
            canonical_key=self.keys.canonical_key(),
            snapshot_key=self.keys.snapshot_key(now),
            index_key=self.keys.index_key(now),
            record_count=len(stamped.data),
            published_at=now,
        )

        steps = [
            ("canonical", lambda: self.store.json_set(result.canonical_key, document)),
            ("canonical_ttl", lambda: self.store.expire(result.canonical_key, self.policy.canonical_ttl)),
            ("snapshot", lambda: self.store.json_set(result.snapshot_key, document)),
            ("snapshot_ttl", lambda: self.store.expire(result.snapshot_key, self.policy.snapshot_ttl)),
            ("index", lambda: self.store.list_append(result.index_key, result.snapshot_key)),
            ("index_ttl", lambda: self.store.expire(result.index_key, self.policy.index_ttl)),
            # no expiry: the version must outlive canonical and snapshot TTLs
            ("version", lambda: self.store.set_string(self.keys.version_key(), result.version)),
        ]

        for name, step in steps:
            await self._attempt(result, name, step)

        if result.ok:
            logger.info(
                f"Published {result.record_count} records to {result.canonical_key} "
                f"and {result.snapshot_key} (version {result.version})"
            )
        else:
            logger.warning(
                f"Published version {result.version} with failed steps: {', '.join(result.failed_steps)}"
            )
        return result

    async def _attempt(self, result: PublishResult, name: str, step: Callable[[], Awaitable[object]]) -> None:
        try:
            await step()
        except DocumentStoreError as e:
            logger.warning(f"Publish step '{name}' failed: {e}")
            result.failed_steps.append(name)
        else:
            result.completed_steps.append(name)
