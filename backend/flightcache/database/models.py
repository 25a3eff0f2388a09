"""
SQLAlchemy models for the raw payload archive.

Every ingestion tick archives the fetched payload as one row so the
relational side keeps a durable copy of what the cache served.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, DateTime, Text, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FlightPayload(Base):
    """Raw flights payload as received from the upstream API."""
    __tablename__ = 'flight_payloads'

    payload_id = Column(Integer, primary_key=True, autoincrement=True)
    received_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    record_count = Column(Integer, nullable=False, default=0)
    payload = Column(Text, nullable=False)

    __table_args__ = (
        Index('idx_flight_payloads_received', 'received_at'),
    )

    def __repr__(self):
        return f"<FlightPayload(id={self.payload_id}, records={self.record_count}, at={self.received_at})>"


def create_all_tables(engine):
    """
    Create all database tables using the provided SQLAlchemy engine.

    Args:
        engine: SQLAlchemy engine instance
    """
    Base.metadata.create_all(bind=engine)
