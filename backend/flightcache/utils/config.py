"""
Environment configuration loader with validation for the flight cache.
"""

import os
import logging
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, ValidationInfo
from dotenv import load_dotenv

from ..cache.config import ValkeyConfig
from ..services.aviation import DEFAULT_ENDPOINT

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class AppConfig(BaseModel):
    """Configuration model for the flight cache with validation."""

    # Valkey Configuration
    valkey_host: str = Field(default="localhost", description="Valkey server host")
    valkey_port: int = Field(default=6379, ge=1, le=65535, description="Valkey server port")
    valkey_password: Optional[str] = Field(default=None, description="Valkey server password")
    valkey_database: int = Field(default=0, ge=0, le=15, description="Valkey database number")
    valkey_max_connections: int = Field(default=10, ge=1, description="Maximum Valkey connections")

    # Key space and expiry
    key_prefix: str = Field(default="flights", min_length=1, description="Prefix for every key")
    canonical_ttl_minutes: int = Field(default=60, ge=1, description="TTL of the canonical document")
    snapshot_ttl_days: int = Field(default=2, ge=1, description="TTL of snapshots and daily indexes")
    query_ttl_minutes: int = Field(default=30, ge=1, description="TTL of cached query results")

    # Ingestion
    ingestion_interval_minutes: float = Field(default=50, gt=0, description="Minutes between ticks")
    aviation_api_url: str = Field(default=DEFAULT_ENDPOINT, description="Flights endpoint")
    aviation_api_key: Optional[str] = Field(default=None, description="Flights API access key")
    aviation_timeout_seconds: float = Field(default=60, gt=0, description="Upstream request timeout")

    # Payload archive
    database_url: Optional[str] = Field(default=None, description="SQLAlchemy URL, archive disabled when unset")

    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("query_ttl_minutes")
    @classmethod
    def validate_query_ttl(cls, v: int, info: ValidationInfo) -> int:
        """Query results must expire before the canonical document and snapshots."""
        canonical = info.data.get("canonical_ttl_minutes")
        if canonical is not None and v >= canonical:
            raise ValueError("Query TTL must be shorter than the canonical TTL")
        snapshot_days = info.data.get("snapshot_ttl_days")
        if snapshot_days is not None and v >= snapshot_days * 24 * 60:
            raise ValueError("Query TTL must be shorter than the snapshot TTL")
        return v

    @property
    def ingestion_interval_seconds(self) -> float:
        return self.ingestion_interval_minutes * 60

    def valkey_config(self) -> ValkeyConfig:
        """Valkey connection settings, socket tuning taken from the environment."""
        base = ValkeyConfig.from_env()
        base.host = self.valkey_host
        base.port = self.valkey_port
        base.password = self.valkey_password
        base.database = self.valkey_database
        base.max_connections = self.valkey_max_connections
        return base


def load_config(env_file: Optional[str] = None) -> AppConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Optional path to .env file. If None, looks for .env in current directory.

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    if env_file is None:
        env_file = ".env"

    if os.path.exists(env_file):
        load_dotenv(env_file)

    config_data: Dict[str, Any] = {
        "valkey_host": os.getenv("VALKEY_HOST", "localhost"),
        "valkey_port": os.getenv("VALKEY_PORT", "6379"),
        "valkey_password": os.getenv("VALKEY_PASSWORD") or None,
        "valkey_database": os.getenv("VALKEY_DATABASE", "0"),
        "valkey_max_connections": os.getenv("VALKEY_MAX_CONNECTIONS", "10"),
        "key_prefix": os.getenv("FLIGHTS_KEY_PREFIX", "flights"),
        "canonical_ttl_minutes": os.getenv("FLIGHTS_CANONICAL_TTL_MINUTES", "60"),
        "snapshot_ttl_days": os.getenv("FLIGHTS_SNAPSHOT_TTL_DAYS", "2"),
        "query_ttl_minutes": os.getenv("FLIGHTS_QUERY_TTL_MINUTES", "30"),
        "ingestion_interval_minutes": os.getenv("INGESTION_INTERVAL_MINUTES", "50"),
        "aviation_api_url": os.getenv("AVIATION_API_URL", DEFAULT_ENDPOINT),
        "aviation_api_key": os.getenv("AVIATION_API_KEY") or None,
        "aviation_timeout_seconds": os.getenv("AVIATION_TIMEOUT_SECONDS", "60"),
        "database_url": os.getenv("DATABASE_URL") or None,
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }

    try:
        return AppConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}") from e


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the CLI and the ingestion loop."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
