"""
Shared fixtures for the flight cache test suite.

Provides sample flight records and in-memory stores that count or fail
specific operations, so the tests never need a running Valkey server.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import pytest

from flightcache.cache import InMemoryDocumentStore, DocumentStoreError, ROOT_PATH
from flightcache.models import Dataset

PUBLISH_TIME = datetime(2025, 10, 10, 5, 0, 0, tzinfo=timezone.utc)


def make_record(airline: str, dep: str, arr: str, number: str = "100") -> Dict:
    return {
        "flight_date": "2025-10-10",
        "flight_status": "scheduled",
        "departure": {
            "airport": f"{dep} International",
            "timezone": "UTC",
            "iata": dep,
            "icao": f"Z{dep}",
            "delay": 12,
            "scheduled": "2025-10-10T04:00:00+00:00",
        },
        "arrival": {
            "airport": f"{arr} International",
            "iata": arr,
            "scheduled": "2025-10-10T07:30:00+00:00",
        },
        "airline": {"name": f"{airline} Airways", "iata": airline, "icao": f"{airline}X"},
        "flight": {"number": number, "iata": f"{airline}{number}", "icao": f"{airline}X{number}"},
        "aircraft": None,
        "live": None,
    }


@pytest.fixture
def sample_records() -> List[Dict]:
    return [
        make_record("MU", "PVG", "DNH", "5501"),
        make_record("FR", "OTP", "BGY", "8112"),
        make_record("6E", "DEL", "HBX", "7263"),
    ]


@pytest.fixture
def sample_dataset(sample_records) -> Dataset:
    return Dataset.model_validate({
        "pagination": {"limit": 100, "offset": 0, "count": 3, "total": 3},
        "data": sample_records,
    })


class FixedClock:
    """Monotonic stand-in the tests can advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingStore(InMemoryDocumentStore):
    """In-memory store that counts JSON reads per key and path."""

    def __init__(self, clock=None):
        super().__init__(clock=clock or FixedClock())
        self.json_reads: List[tuple] = []

    async def json_get(self, key: str, path: str = ROOT_PATH) -> Optional[str]:
        self.json_reads.append((key, path))
        return await super().json_get(key, path)

    def reads_of(self, key: str) -> int:
        return sum(1 for read_key, _ in self.json_reads if read_key == key)


class FailingStore(CountingStore):
    """Counting store whose listed operations always fail."""

    def __init__(self, fail_ops: Set[str], fail_keys: Optional[Set[str]] = None, clock=None):
        super().__init__(clock=clock)
        self.fail_ops = fail_ops
        self.fail_keys = fail_keys

    def _check(self, operation: str, key: str) -> None:
        if operation in self.fail_ops and (self.fail_keys is None or key in self.fail_keys):
            raise DocumentStoreError(operation, key, "simulated outage")

    async def json_get(self, key, path=ROOT_PATH):
        self._check("JSON.GET", key)
        return await super().json_get(key, path)

    async def json_set(self, key, document):
        self._check("JSON.SET", key)
        return await super().json_set(key, document)

    async def list_append(self, key, value):
        self._check("RPUSH", key)
        return await super().list_append(key, value)

    async def get_string(self, key):
        self._check("GET", key)
        return await super().get_string(key)

    async def set_string(self, key, value):
        self._check("SET", key)
        return await super().set_string(key, value)

    async def expire(self, key, seconds):
        self._check("EXPIRE", key)
        return await super().expire(key, seconds)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store(clock) -> CountingStore:
    return CountingStore(clock=clock)
