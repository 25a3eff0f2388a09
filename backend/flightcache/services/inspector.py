"""
Raw key access for operational inspection and manual seeding.

Not part of the query protocol: values are read and written whole, with no
filtering and no cache bookkeeping.
"""

import json
import logging
from typing import Any, List, Optional

from ..cache.store import DocumentStore
from ..cache.utils import DEFAULT_PREFIX

logger = logging.getLogger(__name__)


class KeyInspector:
    """Get, set and list arbitrary keys in the document store."""

    def __init__(self, store: DocumentStore, prefix: str = DEFAULT_PREFIX):
        self.store = store
        self.prefix = prefix

    @property
    def default_pattern(self) -> str:
        return f"{self.prefix}:*"

    async def get(self, key: str) -> Optional[Any]:
        """
        Read the whole JSON document at ``key``.

        Returns:
            The parsed document, or None if the key does not exist
        """
        raw = await self.store.json_get(key)
        if raw is None:
            return None
        value = json.loads(raw)
        # root-path reads come back as a one-element array
        if isinstance(value, list) and len(value) == 1:
            return value[0]
        return value

    async def set(self, key: str, value: Any) -> bool:
        """Store ``value`` as a JSON document under ``key``, replacing it."""
        saved = await self.store.json_set(key, json.dumps(value, separators=(",", ":")))
        logger.info(f"Manually set {key}")
        return saved

    async def list_keys(self, pattern: Optional[str] = None) -> List[str]:
        """
        List keys matching a glob pattern, sorted.

        Scans the whole keyspace; scope the pattern on large stores.
        """
        return sorted(await self.store.keys(pattern or self.default_pattern))
