"""
Cache utilities for key naming conventions and TTL policy.

This module provides the key templates shared by the snapshot publisher and
the query resolver, the filter fingerprint used in query cache keys, and the
TTL policy both components are configured with.
"""

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

DEFAULT_PREFIX = "flights"
NO_VERSION = "noversion"
EMPTY_FILTER = "_"

SNAPSHOT_STAMP_FORMAT = "%Y%m%d%H%M%S"
INDEX_STAMP_FORMAT = "%Y%m%d"


class CacheKeyPrefix(str, Enum):
    """Key segments placed after the configured prefix."""

    CANONICAL = "last"
    SNAPSHOT = "snapshot"
    INDEX = "index"
    VERSION = "version"
    QUERY = "q"


class TTLPreset(int, Enum):
    """Default TTLs in seconds."""

    CANONICAL = 3600        # 60 minutes
    QUERY_RESULTS = 1800    # 30 minutes
    SNAPSHOT = 172800       # 2 days
    DAILY_INDEX = 172800    # 2 days


@dataclass(frozen=True)
class CachePolicy:
    """Key prefix and expiry horizons shared by publisher and resolver."""

    prefix: str = DEFAULT_PREFIX
    canonical_ttl: int = TTLPreset.CANONICAL.value
    snapshot_ttl: int = TTLPreset.SNAPSHOT.value
    index_ttl: int = TTLPreset.DAILY_INDEX.value
    query_ttl: int = TTLPreset.QUERY_RESULTS.value

    @classmethod
    def from_config(cls, config: Any) -> "CachePolicy":
        """Build the policy from an AppConfig."""
        return cls(
            prefix=config.key_prefix,
            canonical_ttl=config.canonical_ttl_minutes * 60,
            snapshot_ttl=config.snapshot_ttl_days * 86400,
            index_ttl=config.snapshot_ttl_days * 86400,
            query_ttl=config.query_ttl_minutes * 60,
        )


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def version_token(moment: datetime) -> str:
    """Version token for a publish instant, second granularity."""
    return as_utc(moment).strftime(SNAPSHOT_STAMP_FORMAT)


def filter_fingerprint(airline: Optional[str], airport: Optional[str]) -> str:
    """
    Deterministic 16-hex-character digest of a canonicalized filter pair.

    Args:
        airline: Normalized airline IATA code or None
        airport: Normalized airport IATA code or None

    Returns:
        str: First 16 characters of the SHA-256 hex digest

    Example:
        filter_fingerprint("MU", None)  # digest of "airline=MU;airport="
    """
    canonical = f"airline={airline or ''};airport={airport or ''}"
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


class CacheKeyBuilder:
    """
    Builds the documented store keys for one prefix.

    Templates:
        {prefix}:last
        {prefix}:snapshot:{YYYYmmddHHMMSS}
        {prefix}:index:{YYYYmmdd}
        {prefix}:version
        {prefix}:q:{airline|_}:{airport|_}:{version}:{fingerprint}
    """

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        self.prefix = prefix

    def build_key(self, segment: Union[CacheKeyPrefix, str], *parts: Any) -> str:
        """Join the prefix, a key segment and any non-None parts with colons."""
        segment_str = segment.value if isinstance(segment, CacheKeyPrefix) else str(segment)
        key_parts = [self.prefix, segment_str]
        key_parts.extend(str(part) for part in parts if part is not None)
        return ":".join(key_parts)

    def canonical_key(self) -> str:
        return self.build_key(CacheKeyPrefix.CANONICAL)

    def version_key(self) -> str:
        return self.build_key(CacheKeyPrefix.VERSION)

    def snapshot_key(self, moment: datetime) -> str:
        return self.build_key(CacheKeyPrefix.SNAPSHOT, as_utc(moment).strftime(SNAPSHOT_STAMP_FORMAT))

    def index_key(self, moment: datetime) -> str:
        return self.build_key(CacheKeyPrefix.INDEX, as_utc(moment).strftime(INDEX_STAMP_FORMAT))

    def query_key(self, airline: Optional[str], airport: Optional[str], version: str) -> str:
        """Version-scoped cache key for a normalized filter pair."""
        return self.build_key(
            CacheKeyPrefix.QUERY,
            airline or EMPTY_FILTER,
            airport or EMPTY_FILTER,
            version,
            filter_fingerprint(airline, airport),
        )

    def query_pattern(self) -> str:
        """Glob pattern matching every query cache entry."""
        return self.build_key(CacheKeyPrefix.QUERY, "*")

    def query_key_version(self, key: str) -> Optional[str]:
        """
        Extract the version segment from a query cache key.

        Returns None when ``key`` is not a query key for this prefix.
        """
        head = f"{self.build_key(CacheKeyPrefix.QUERY)}:"
        if not key.startswith(head):
            return None
        parts = key[len(head):].split(":")
        if len(parts) != 4:
            return None
        return parts[2]
