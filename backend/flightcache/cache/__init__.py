"""
Storage layer for the flight snapshot cache.

This module contains Valkey client configuration, the document store
abstraction with its Valkey and in-memory implementations, and the key
naming and TTL conventions.
"""

from .config import (
    ValkeyConfig,
    ValkeyConnectionError,
    ValkeyConfigurationError,
    DocumentStoreError,
    StructuredQueryError,
)
from .client import ValkeyClient
from .store import DocumentStore, ValkeyDocumentStore, InMemoryDocumentStore, ROOT_PATH
from .utils import (
    CacheKeyPrefix,
    TTLPreset,
    CachePolicy,
    CacheKeyBuilder,
    filter_fingerprint,
    version_token,
    utc_now,
    NO_VERSION,
)

__all__ = [
    # Configuration
    "ValkeyConfig",
    "ValkeyConnectionError",
    "ValkeyConfigurationError",
    "DocumentStoreError",
    "StructuredQueryError",

    # Client and stores
    "ValkeyClient",
    "DocumentStore",
    "ValkeyDocumentStore",
    "InMemoryDocumentStore",
    "ROOT_PATH",

    # Utilities
    "CacheKeyPrefix",
    "TTLPreset",
    "CachePolicy",
    "CacheKeyBuilder",
    "filter_fingerprint",
    "version_token",
    "utc_now",
    "NO_VERSION",
]
