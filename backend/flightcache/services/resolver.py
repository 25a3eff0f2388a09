"""
Query resolver with version-scoped result caching.

A query is answered from ``{prefix}:q:...:{version}:{fingerprint}`` when
that entry exists. Otherwise the canonical document is read, first with a
structured-path filter evaluated by the store, then, if the store cannot
answer that, as a whole document filtered in memory. The computed array is
written back under the cache key with the query TTL.

Publishing a new dataset changes the version token, which changes every
cache key, so earlier entries are never consulted again and simply expire.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..cache.config import DocumentStoreError
from ..cache.store import DocumentStore
from ..cache.utils import CacheKeyBuilder, CachePolicy, NO_VERSION
from ..models.query import FlightQuery
from .normalizer import dump_json, normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryResult:
    """
    A resolved query.

    ``payload`` is the compact JSON array of matching records. An empty
    array means the dataset exists but nothing matched.
    """

    payload: str
    cache_key: str
    version: str

    @property
    def records(self) -> List[Dict[str, Any]]:
        return json.loads(self.payload)

    def __len__(self) -> int:
        return len(self.records)


class QueryResolver:
    """Resolves filtered queries against the canonical flight document."""

    def __init__(self, store: DocumentStore, policy: Optional[CachePolicy] = None):
        self.store = store
        self.policy = policy or CachePolicy()
        self.keys = CacheKeyBuilder(self.policy.prefix)

    async def current_version(self) -> str:
        """Current version token, or the ``noversion`` sentinel."""
        try:
            version = await self.store.get_string(self.keys.version_key())
        except DocumentStoreError as e:
            logger.warning(f"Version lookup failed, using '{NO_VERSION}': {e}")
            return NO_VERSION
        if not version or not version.strip():
            return NO_VERSION
        return version.strip()

    async def resolve(self, query: FlightQuery) -> Optional[QueryResult]:
        """
        Resolve ``query``.

        Args:
            query: Normalized airline/airport filter

        Returns:
            QueryResult with the matching records, or None when there is no
            canonical dataset to search
        """
        version = await self.current_version()
        cache_key = self.keys.query_key(query.airline_iata, query.airport_iata, version)

        cached = await self._read_cached(cache_key)
        if cached is not None:
            logger.debug(f"Query cache hit: {cache_key}")
            return QueryResult(payload=cached, cache_key=cache_key, version=version)

        payload = await self._read_structured(query)
        if payload is None:
            payload = await self._read_and_filter(query)
        if payload is None:
            logger.info(f"No canonical dataset at {self.keys.canonical_key()}")
            return None

        await self._write_cached(cache_key, payload)
        return QueryResult(payload=payload, cache_key=cache_key, version=version)

    async def _read_cached(self, cache_key: str) -> Optional[str]:
        try:
            raw = await self.store.json_get(cache_key)
        except DocumentStoreError as e:
            logger.warning(f"Query cache read failed, resolving from canonical: {e}")
            return None
        if raw is None:
            return None
        return _as_array(normalize(raw))

    async def _read_structured(self, query: FlightQuery) -> Optional[str]:
        """Store-side filtered read; None when unsupported, failed or absent."""
        path = query.to_json_path()
        try:
            raw = await self.store.json_get(self.keys.canonical_key(), path)
        except DocumentStoreError as e:
            logger.debug(f"Structured read {path} unavailable, filtering in memory: {e}")
            return None
        if raw is None:
            return None
        return _as_array(normalize(raw))

    async def _read_and_filter(self, query: FlightQuery) -> Optional[str]:
        """Whole-document read filtered in memory; None when the document is absent."""
        try:
            raw = await self.store.json_get(self.keys.canonical_key())
        except DocumentStoreError as e:
            logger.warning(f"Canonical document read failed: {e}")
            return None
        if raw is None:
            return None

        document = _unwrap_document(raw)
        if document is None:
            logger.warning("Canonical document has an unexpected shape, treating as empty")
            return dump_json([])

        records = document.get("data")
        if not isinstance(records, list):
            return dump_json([])
        return dump_json([record for record in records if query.matches(record)])

    async def _write_cached(self, cache_key: str, payload: str) -> None:
        try:
            await self.store.json_set(cache_key, payload)
            await self.store.expire(cache_key, self.policy.query_ttl)
        except DocumentStoreError as e:
            logger.warning(f"Could not cache query result under {cache_key}: {e}")

    async def purge_stale(self) -> int:
        """
        Delete query cache entries scoped to any version but the current one.

        Entries from earlier versions are unreachable anyway; this only
        frees memory ahead of their TTL. Returns the number deleted.
        """
        version = await self.current_version()
        keys = await self.store.keys(self.keys.query_pattern())
        stale = [key for key in keys
                 if self.keys.query_key_version(key) not in (None, version)]
        if not stale:
            return 0
        deleted = await self.store.delete(*stale)
        logger.info(f"Purged {deleted} stale query cache entries (current version {version})")
        return deleted


def _as_array(normalized: Any) -> Optional[str]:
    """Accept a normalized payload only if it really is a JSON array."""
    try:
        value = json.loads(normalized)
    except (TypeError, ValueError):
        return None
    return dump_json(value) if isinstance(value, list) else None


def _unwrap_document(raw: str) -> Optional[Dict[str, Any]]:
    try:
        root = json.loads(raw)
    except (TypeError, ValueError):
        return None
    # a root-path read is wrapped in a one-element array
    if isinstance(root, list) and len(root) == 1:
        root = root[0]
    return root if isinstance(root, dict) else None
