"""
Database package for the flights payload archive.

This package provides the SQLAlchemy model, engine configuration and the
fire-and-forget sink used by the ingestion job.
"""

from .models import Base, FlightPayload, create_all_tables
from .config import DatabaseConfig
from .sink import RawPayloadSink

__all__ = [
    'Base',
    'FlightPayload',
    'create_all_tables',
    'DatabaseConfig',
    'RawPayloadSink',
]
