"""
Engine and session handling for the raw payload archive.

The archive accepts SQLite, MySQL/MariaDB and PostgreSQL URLs. The engine
is built lazily on the first session so a misconfigured archive never
blocks start-up of the cache itself.
"""

import os
import threading
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from .models import create_all_tables

logger = logging.getLogger(__name__)

_URL_SCHEMES = (
    ("sqlite", "sqlite"),
    ("mysql", "mysql"),
    ("mariadb", "mysql"),
    ("postgresql", "postgresql"),
)


class DatabaseConfig:
    """
    Archive database settings with a lazily created engine.

    Args:
        database_url: SQLAlchemy URL, e.g. ``sqlite:///flights.db``
        echo: Log every SQL statement
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None
        self._init_lock = threading.Lock()
        self.db_type = next(
            (kind for scheme, kind in _URL_SCHEMES if database_url.startswith(scheme)), "unknown"
        )
        self.engine_kwargs = self._engine_kwargs()

        logger.info(f"Payload archive configured for {self.db_type}")

    def _engine_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"echo": self.echo}

        if self.db_type == "sqlite":
            # one shared connection, written from the sink's worker threads
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        elif self.db_type in ("mysql", "postgresql"):
            kwargs.update(
                poolclass=QueuePool,
                pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
                max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
                pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
                pool_recycle=int(os.getenv("DB_POOL_RECYCLE", "3600")),
                pool_pre_ping=True,
            )
            if self.db_type == "mysql":
                kwargs["connect_args"] = {"charset": "utf8mb4", "connect_timeout": 30}

        return kwargs

    @property
    def is_initialized(self) -> bool:
        return self.SessionLocal is not None

    def initialize(self) -> None:
        """
        Create the engine, check it with ``SELECT 1`` and create the tables.

        Safe to call from several worker threads; only the first builds
        the engine.

        Raises:
            SQLAlchemyError: If the database cannot be reached
        """
        if self.is_initialized:
            return

        with self._init_lock:
            if self.is_initialized:
                return

            engine = create_engine(self.database_url, **self.engine_kwargs)
            try:
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                create_all_tables(engine)
            except SQLAlchemyError as e:
                engine.dispose()
                logger.error(f"Payload archive unavailable: {e}")
                raise

            self.engine = engine
            self.SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        logger.info(f"Payload archive ready ({self.db_type})")

    def get_session(self) -> Session:
        self.initialize()
        return self.SessionLocal()

    @contextmanager
    def get_session_context(self) -> Iterator[Session]:
        """
        Session that commits on success and rolls back on any error.

        Usage:
            with db_config.get_session_context() as session:
                session.add(FlightPayload(payload=document, record_count=3))
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Archive session rolled back: {e}")
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Payload archive connections closed")
        self.engine = None
        self.SessionLocal = None
