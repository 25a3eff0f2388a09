"""
Upstream flights API client.

Fetches the current flights page from an AviationStack-compatible endpoint
and parses it into a Dataset.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from ..models.flight import Dataset

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://api.aviationstack.com/v1/flights"


class FetchError(Exception):
    """The upstream API could not be reached or returned an unusable payload."""
    pass


class AviationStackClient:
    """
    Async client for the flights endpoint.

    Args:
        access_key: API access key sent as the ``access_key`` query parameter
        endpoint: Flights endpoint URL
        timeout: Request timeout in seconds
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        access_key: Optional[str],
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_key = access_key
        self.endpoint = endpoint
        self.timeout = timeout
        self._transport = transport

    async def fetch(self) -> Dataset:
        """
        Download and parse the flights payload.

        Raises:
            FetchError: On transport errors, non-2xx responses or invalid JSON
        """
        params = {"access_key": self.access_key} if self.access_key else {}
        headers = {"Accept": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.endpoint, params=params, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(f"Flights API returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Flights API request failed: {e}") from e

        try:
            dataset = Dataset.model_validate_json(response.content)
        except ValidationError as e:
            raise FetchError(f"Flights API payload could not be parsed: {e.error_count()} errors") from e

        logger.info(f"Fetched {len(dataset.data)} flight records from {self.endpoint}")
        return dataset
