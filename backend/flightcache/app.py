"""
Composition root.

Builds the store client, publisher, resolver, inspector and ingestion job
from an AppConfig and wires them together explicitly. The ValkeyClient is
created once and shared by reference.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from .cache.client import ValkeyClient
from .cache.store import DocumentStore, ValkeyDocumentStore
from .cache.utils import CachePolicy
from .database.config import DatabaseConfig
from .database.sink import RawPayloadSink
from .services.aviation import AviationStackClient
from .services.ingestion import IngestionJob
from .services.inspector import KeyInspector
from .services.publisher import SnapshotPublisher
from .services.resolver import QueryResolver
from .utils.config import AppConfig

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every long-lived component of a running process."""

    config: AppConfig
    store: DocumentStore
    publisher: SnapshotPublisher
    resolver: QueryResolver
    inspector: KeyInspector
    job: IngestionJob
    sink: RawPayloadSink
    client: Optional[ValkeyClient] = None


def build_services(
    config: AppConfig,
    store: Optional[DocumentStore] = None,
    fetcher: Optional[AviationStackClient] = None,
) -> Services:
    """
    Wire the components for ``config``.

    Args:
        config: Application configuration
        store: Store to use instead of a Valkey-backed one
        fetcher: Upstream client to use instead of one built from config
    """
    client = None
    if store is None:
        client = ValkeyClient(config.valkey_config())
        store = ValkeyDocumentStore(client)

    policy = CachePolicy.from_config(config)
    fetcher = fetcher or AviationStackClient(
        access_key=config.aviation_api_key,
        endpoint=config.aviation_api_url,
        timeout=config.aviation_timeout_seconds,
    )
    sink = RawPayloadSink(DatabaseConfig(config.database_url) if config.database_url else None)
    publisher = SnapshotPublisher(store, policy)

    return Services(
        config=config,
        store=store,
        publisher=publisher,
        resolver=QueryResolver(store, policy),
        inspector=KeyInspector(store, policy.prefix),
        job=IngestionJob(fetcher, publisher, sink, config.ingestion_interval_seconds),
        sink=sink,
        client=client,
    )


@asynccontextmanager
async def open_services(config: AppConfig, **overrides) -> AsyncIterator[Services]:
    """
    Build, connect and always tear down the services.

    Usage:
        async with open_services(load_config()) as services:
            await services.resolver.resolve(FlightQuery(airline_iata="MU"))
    """
    services = build_services(config, **overrides)
    if services.client is not None:
        await services.client.connect()
    try:
        yield services
    finally:
        await services.sink.drain()
        services.sink.close()
        if services.client is not None:
            await services.client.disconnect()
