"""
Shared asyncio Valkey connection.

The process owns a single ValkeyClient. The ingestion job and every query
share it by reference, and each store call borrows a pooled connection
through ``connection_context()``. A failed health check triggers a
reconnect with exponential backoff before the call proceeds.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import valkey.asyncio as valkey
from valkey.exceptions import ConnectionError, TimeoutError

from .config import ValkeyConfig, ValkeyConnectionError

logger = logging.getLogger(__name__)

MAX_CONNECT_ATTEMPTS = 3
BASE_RETRY_DELAY = 1.0
MAX_RETRY_DELAY = 30.0


def retry_delay(attempt: int) -> float:
    """Backoff before retrying after ``attempt`` (1-based) failed."""
    return min(BASE_RETRY_DELAY * 2 ** (attempt - 1), MAX_RETRY_DELAY)


class ValkeyClient:
    """
    Pooled asyncio client with health checks and reconnection.

    Args:
        config: Connection settings, read from the environment when omitted
    """

    def __init__(self, config: Optional[ValkeyConfig] = None):
        self.config = config or ValkeyConfig.from_env()
        self._pool: Optional[valkey.ConnectionPool] = None
        self._client: Optional[valkey.Valkey] = None
        self._is_connected = False
        self._last_health_check = 0.0
        self._reconnect_lock = asyncio.Lock()

        logger.info(f"Valkey client configured: {self.config}")

    async def connect(self) -> None:
        """
        Open the pool and verify it with PING.

        Raises:
            ValkeyConnectionError: After MAX_CONNECT_ATTEMPTS failed attempts
        """
        if self.is_connected:
            return

        for attempt in range(1, MAX_CONNECT_ATTEMPTS + 1):
            try:
                await self._open()
            except (ConnectionError, TimeoutError, OSError, ValkeyConnectionError) as e:
                await self._close_pool()
                if attempt == MAX_CONNECT_ATTEMPTS:
                    logger.error(f"Giving up on Valkey at {self.config.host}:{self.config.port}: {e}")
                    raise ValkeyConnectionError(
                        f"Failed to connect to Valkey after {MAX_CONNECT_ATTEMPTS} attempts: {e}"
                    ) from e
                delay = retry_delay(attempt)
                logger.warning(f"Valkey connection attempt {attempt} failed ({e}), retrying in {delay:.1f}s")
                await asyncio.sleep(delay)
            else:
                logger.info(f"Connected to Valkey at {self.config.host}:{self.config.port}")
                return

    async def _open(self) -> None:
        self._pool = valkey.ConnectionPool(**self.config.to_connection_pool_kwargs())
        self._client = valkey.Valkey(connection_pool=self._pool)
        await self._ping()
        self._is_connected = True
        self._last_health_check = time.time()

    async def _ping(self) -> None:
        if self._client is None:
            raise ValkeyConnectionError("Client not initialized")
        try:
            alive = await self._client.ping()
        except Exception as e:
            raise ValkeyConnectionError(f"PING failed: {e}") from e
        if not alive:
            raise ValkeyConnectionError("PING returned no reply")

    async def _close_pool(self) -> None:
        pool, self._pool, self._client = self._pool, None, None
        self._is_connected = False
        if pool is not None:
            await pool.disconnect()

    async def disconnect(self) -> None:
        """Release every pooled connection."""
        if self._pool is None:
            self._is_connected = False
            return
        try:
            await self._close_pool()
        except (ConnectionError, OSError) as e:
            logger.warning(f"Error while disconnecting from Valkey: {e}")
        else:
            logger.info("Disconnected from Valkey")

    async def health_check(self, force: bool = False) -> bool:
        """
        PING the server at most once per ``health_check_interval`` seconds.

        Returns the cached state between checks unless ``force`` is set.
        """
        now = time.time()
        if not force and now - self._last_health_check < self.config.health_check_interval:
            return self._is_connected
        self._last_health_check = now

        if not self.is_connected:
            return False
        try:
            await self._ping()
        except ValkeyConnectionError as e:
            logger.warning(f"Valkey health check failed: {e}")
            self._is_connected = False
            return False
        return True

    async def ensure_connection(self) -> valkey.Valkey:
        """
        Return a client that passed its health check, reconnecting if needed.

        Reconnects are serialized: tasks that find the connection unhealthy
        wait for the first one to rebuild the pool and then reuse it.

        Raises:
            ValkeyConnectionError: If the server cannot be reached
        """
        checked = self._client
        if checked is not None and await self.health_check():
            return checked

        async with self._reconnect_lock:
            if self.is_connected and self._client is not checked:
                return self._client
            logger.info("Valkey connection unhealthy, reconnecting")
            await self._close_pool()
            await self.connect()
            return self.client

    @property
    def is_connected(self) -> bool:
        return self._is_connected and self._client is not None

    @property
    def client(self) -> valkey.Valkey:
        """
        The underlying asyncio client.

        Raises:
            ValkeyConnectionError: If connect() has not succeeded
        """
        if not self.is_connected:
            raise ValkeyConnectionError("Client not connected. Call connect() first.")
        return self._client

    @asynccontextmanager
    async def connection_context(self) -> AsyncIterator[valkey.Valkey]:
        """
        Yield the client once the connection is known to be healthy.

        Usage:
            async with client.connection_context() as conn:
                await conn.get("flights:version")
        """
        conn = await self.ensure_connection()
        yield conn

    async def __aenter__(self) -> "ValkeyClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
