"""
Services package for the flight snapshot cache.

This package contains the snapshot publisher, the query resolver and its
result normalizer, raw key access, the upstream API client and the
periodic ingestion job.
"""

from .normalizer import normalize, dump_json
from .publisher import SnapshotPublisher, PublishResult
from .resolver import QueryResolver, QueryResult
from .inspector import KeyInspector
from .aviation import AviationStackClient, FetchError
from .ingestion import IngestionJob

__all__ = [
    "normalize",
    "dump_json",
    "SnapshotPublisher",
    "PublishResult",
    "QueryResolver",
    "QueryResult",
    "KeyInspector",
    "AviationStackClient",
    "FetchError",
    "IngestionJob",
]
