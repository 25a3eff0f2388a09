"""
Valkey connection settings and the error types of the store layer.
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes")


@dataclass
class ValkeyConfig:
    """
    Where and how to reach the Valkey server holding the flight documents.

    Responses are always decoded to ``str``; the JSON module hands documents
    back as text and every caller expects text.
    """

    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    database: int = 0
    max_connections: int = 10
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 10.0
    retry_on_timeout: bool = True
    health_check_interval: int = 30
    decode_responses: bool = True

    @classmethod
    def from_env(cls) -> "ValkeyConfig":
        """
        Read ``VALKEY_*`` variables, falling back to the defaults above.

        Raises:
            ValkeyConfigurationError: If a numeric variable cannot be parsed
        """
        try:
            config = cls(
                host=os.getenv("VALKEY_HOST", cls.host),
                port=int(os.getenv("VALKEY_PORT", cls.port)),
                password=os.getenv("VALKEY_PASSWORD") or None,
                database=int(os.getenv("VALKEY_DATABASE", cls.database)),
                max_connections=int(os.getenv("VALKEY_MAX_CONNECTIONS", cls.max_connections)),
                socket_timeout=float(os.getenv("VALKEY_SOCKET_TIMEOUT", cls.socket_timeout)),
                socket_connect_timeout=float(
                    os.getenv("VALKEY_SOCKET_CONNECT_TIMEOUT", cls.socket_connect_timeout)
                ),
                retry_on_timeout=_env_flag("VALKEY_RETRY_ON_TIMEOUT", cls.retry_on_timeout),
                health_check_interval=int(
                    os.getenv("VALKEY_HEALTH_CHECK_INTERVAL", cls.health_check_interval)
                ),
            )
        except ValueError as e:
            raise ValkeyConfigurationError(f"Invalid VALKEY_* setting: {e}") from e
        config.validate()
        return config

    def validate(self) -> None:
        """Reject settings the server or the pool would refuse later."""
        if not 1 <= self.port <= 65535:
            raise ValkeyConfigurationError(f"Port out of range: {self.port}")
        if self.database < 0:
            raise ValkeyConfigurationError(f"Database index must not be negative: {self.database}")
        if self.max_connections < 1:
            raise ValkeyConfigurationError("Pool needs at least one connection")

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for a single asyncio connection."""
        kwargs: Dict[str, Any] = dict(
            host=self.host,
            port=self.port,
            db=self.database,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.socket_connect_timeout,
            retry_on_timeout=self.retry_on_timeout,
            decode_responses=self.decode_responses,
        )
        if self.password:
            kwargs["password"] = self.password
        return kwargs

    def to_connection_pool_kwargs(self) -> Dict[str, Any]:
        """Connection kwargs plus the pool size."""
        return {**self.to_connection_kwargs(), "max_connections": self.max_connections}

    def __str__(self) -> str:
        """Render without the password."""
        secret = "***" if self.password else "None"
        return (
            f"ValkeyConfig(host={self.host}, port={self.port}, db={self.database}, "
            f"password={secret}, max_connections={self.max_connections})"
        )


class ValkeyConnectionError(Exception):
    """The server could not be reached or did not answer PING."""
    pass


class ValkeyConfigurationError(Exception):
    """Connection settings are malformed."""
    pass


class DocumentStoreError(Exception):
    """A single store operation failed."""

    def __init__(self, operation: str, key: Optional[str] = None, detail: str = ""):
        self.operation = operation
        self.key = key
        self.detail = detail
        target = f" on '{key}'" if key else ""
        message = f"{operation}{target} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class StructuredQueryError(DocumentStoreError):
    """The store cannot evaluate the requested structured path."""
    pass
