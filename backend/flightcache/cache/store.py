"""
Key-value document store abstraction.

The publisher, resolver and inspector only talk to a ``DocumentStore``.
``ValkeyDocumentStore`` maps it onto Valkey with the JSON module;
``InMemoryDocumentStore`` keeps everything in a process-local dict and is
used for tests and local runs without a server. The in-memory store has no
structured-path engine, so it rejects any path other than the document root.
"""

import fnmatch
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from valkey.exceptions import ConnectionError, TimeoutError, ResponseError, ValkeyError

from .client import ValkeyClient
from .config import (
    DocumentStoreError,
    StructuredQueryError,
    ValkeyConnectionError,
)

logger = logging.getLogger(__name__)

ROOT_PATH = "$"


class DocumentStore(ABC):
    """Operations the flight cache needs from a networked key-value store."""

    @abstractmethod
    async def json_get(self, key: str, path: str = ROOT_PATH) -> Optional[str]:
        """
        Read a JSON document, or the part of it selected by ``path``.

        Returns the raw JSON text as the store produces it, or None when the
        key does not exist. Raises StructuredQueryError when the path cannot
        be evaluated and DocumentStoreError for any other failure.
        """

    @abstractmethod
    async def json_set(self, key: str, document: str) -> bool:
        """Replace the whole document at ``key`` with serialized JSON."""

    @abstractmethod
    async def list_append(self, key: str, value: str) -> int:
        """Append ``value`` to the list at ``key``; returns the new length."""

    @abstractmethod
    async def get_string(self, key: str) -> Optional[str]:
        """Read a plain string value."""

    @abstractmethod
    async def set_string(self, key: str, value: str) -> bool:
        """Write a plain string value with no expiry."""

    @abstractmethod
    async def expire(self, key: str, seconds: int) -> bool:
        """Set a time to live on ``key``."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys; returns how many existed."""

    @abstractmethod
    async def keys(self, pattern: str) -> List[str]:
        """Enumerate keys matching a glob pattern."""


class ValkeyDocumentStore(DocumentStore):
    """
    DocumentStore backed by Valkey and its JSON module.

    Every call acquires a pooled connection through the shared ValkeyClient
    and translates client exceptions into DocumentStoreError.
    """

    def __init__(self, client: ValkeyClient, scan_count: int = 500):
        self.client = client
        self.scan_count = scan_count

    async def _execute(self, operation: str, key: Optional[str], call: Callable[[Any], Any]) -> Any:
        try:
            async with self.client.connection_context() as conn:
                return await call(conn)
        except ResponseError as e:
            raise DocumentStoreError(operation, key, str(e)) from e
        except (ConnectionError, TimeoutError, ValkeyConnectionError, OSError) as e:
            logger.warning(f"Valkey {operation} failed for {key}: {e}")
            raise DocumentStoreError(operation, key, str(e)) from e
        except ValkeyError as e:
            raise DocumentStoreError(operation, key, str(e)) from e

    async def json_get(self, key: str, path: str = ROOT_PATH) -> Optional[str]:
        try:
            return await self._execute(
                "JSON.GET", key, lambda conn: conn.execute_command("JSON.GET", key, path)
            )
        except DocumentStoreError as e:
            if path != ROOT_PATH and isinstance(e.__cause__, ResponseError):
                raise StructuredQueryError("JSON.GET", key, f"path {path!r}: {e.detail}") from e
            raise

    async def json_set(self, key: str, document: str) -> bool:
        result = await self._execute(
            "JSON.SET", key, lambda conn: conn.execute_command("JSON.SET", key, ROOT_PATH, document)
        )
        return bool(result)

    async def list_append(self, key: str, value: str) -> int:
        return int(await self._execute("RPUSH", key, lambda conn: conn.rpush(key, value)))

    async def get_string(self, key: str) -> Optional[str]:
        return await self._execute("GET", key, lambda conn: conn.get(key))

    async def set_string(self, key: str, value: str) -> bool:
        return bool(await self._execute("SET", key, lambda conn: conn.set(key, value)))

    async def expire(self, key: str, seconds: int) -> bool:
        return bool(await self._execute("EXPIRE", key, lambda conn: conn.expire(key, seconds)))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._execute("DEL", keys[0], lambda conn: conn.delete(*keys)))

    async def keys(self, pattern: str) -> List[str]:
        async def scan(conn) -> List[str]:
            found = []
            async for key in conn.scan_iter(match=pattern, count=self.scan_count):
                found.append(key)
            return found

        return await self._execute("SCAN", pattern, scan)


class InMemoryDocumentStore(DocumentStore):
    """
    Process-local DocumentStore with per-key expiry.

    JSON reads at the root path return the document wrapped in a one-element
    array, the same envelope Valkey JSON produces for ``$``.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Dict[str, Any]] = {}

    def _live(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at = entry.get("expires_at")
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return None
        return entry

    def _typed(self, key: str, kind: str, operation: str) -> Optional[Dict[str, Any]]:
        entry = self._live(key)
        if entry is not None and entry["kind"] != kind:
            raise DocumentStoreError(operation, key, "WRONGTYPE")
        return entry

    async def json_get(self, key: str, path: str = ROOT_PATH) -> Optional[str]:
        if path != ROOT_PATH:
            raise StructuredQueryError("JSON.GET", key, f"path {path!r} not supported in memory")
        entry = self._typed(key, "json", "JSON.GET")
        if entry is None:
            return None
        return json.dumps([entry["value"]], separators=(",", ":"), ensure_ascii=False)

    async def json_set(self, key: str, document: str) -> bool:
        try:
            value = json.loads(document)
        except (TypeError, ValueError) as e:
            raise DocumentStoreError("JSON.SET", key, str(e)) from e
        # JSON.SET at the root replaces the value and clears any TTL
        self._entries[key] = {"kind": "json", "value": value}
        return True

    async def list_append(self, key: str, value: str) -> int:
        entry = self._typed(key, "list", "RPUSH")
        if entry is None:
            entry = {"kind": "list", "value": []}
            self._entries[key] = entry
        entry["value"].append(value)
        return len(entry["value"])

    async def get_string(self, key: str) -> Optional[str]:
        entry = self._typed(key, "string", "GET")
        return None if entry is None else entry["value"]

    async def set_string(self, key: str, value: str) -> bool:
        self._entries[key] = {"kind": "string", "value": str(value)}
        return True

    async def expire(self, key: str, seconds: int) -> bool:
        entry = self._live(key)
        if entry is None:
            return False
        entry["expires_at"] = self._clock() + seconds
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._entries[key]
                removed += 1
        return removed

    async def keys(self, pattern: str) -> List[str]:
        return [key for key in list(self._entries) if self._live(key) is not None
                and fnmatch.fnmatchcase(key, pattern)]

    def ttl(self, key: str) -> Optional[float]:
        """Remaining seconds before ``key`` expires, None without expiry."""
        entry = self._live(key)
        if entry is None or entry.get("expires_at") is None:
            return None
        return entry["expires_at"] - self._clock()

    def list_items(self, key: str) -> List[str]:
        entry = self._typed(key, "list", "LRANGE")
        return [] if entry is None else list(entry["value"])
