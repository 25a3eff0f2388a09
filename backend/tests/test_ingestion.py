"""
Tests for the upstream client and the periodic ingestion job.
"""

import asyncio
import json
from typing import List

import httpx
import pytest

from flightcache.models import Dataset
from flightcache.services.aviation import AviationStackClient, FetchError
from flightcache.services.ingestion import IngestionJob
from flightcache.services.publisher import SnapshotPublisher

from conftest import PUBLISH_TIME


class FakeFetcher:
    """Returns queued datasets or raises queued errors, one per call."""

    def __init__(self, outcomes: List):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def fetch(self) -> Dataset:
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else Dataset()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class BlockingFetcher:
    """Never completes until cancelled."""

    def __init__(self):
        self.started = asyncio.Event()
        self.cancelled = False

    async def fetch(self) -> Dataset:
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise


class RecordingSink:

    def __init__(self):
        self.submitted = []

    def submit(self, dataset):
        self.submitted.append(dataset)


def _publisher(store):
    return SnapshotPublisher(store, clock=lambda: PUBLISH_TIME)


class TestRunOnce:

    @pytest.mark.asyncio
    async def test_fetch_and_publish(self, store, sample_dataset):
        sink = RecordingSink()
        job = IngestionJob(FakeFetcher([sample_dataset]), _publisher(store), sink)

        result = await job.run_once()

        assert result.ok
        assert result.record_count == 3
        assert sink.submitted == [sample_dataset]
        assert await store.get_string("flights:version") == "20251010050000"
        assert job.ticks == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_publishes_empty_dataset(self, store):
        sink = RecordingSink()
        job = IngestionJob(FakeFetcher([FetchError("boom")]), _publisher(store), sink)

        result = await job.run_once()

        assert result.record_count == 0
        assert sink.submitted == []
        document = json.loads(await store.json_get("flights:last"))[0]
        assert document["data"] == []

    @pytest.mark.asyncio
    async def test_without_sink(self, store, sample_dataset):
        job = IngestionJob(FakeFetcher([sample_dataset]), _publisher(store))
        assert (await job.run_once()).ok


class TestRunLoop:

    @pytest.mark.asyncio
    async def test_first_tick_runs_immediately_and_stop_ends_loop(self, store, sample_dataset):
        fetcher = FakeFetcher([sample_dataset])
        job = IngestionJob(fetcher, _publisher(store), interval_seconds=3600)
        stop = asyncio.Event()

        runner = asyncio.create_task(job.run(stop))
        while job.ticks == 0 or await store.get_string("flights:version") is None:
            await asyncio.sleep(0)
        stop.set()
        await asyncio.wait_for(runner, timeout=1)

        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_ticks_repeat_on_interval(self, store):
        fetcher = FakeFetcher([])
        job = IngestionJob(fetcher, _publisher(store), interval_seconds=0.01)
        stop = asyncio.Event()

        runner = asyncio.create_task(job.run(stop))
        while job.ticks < 3:
            await asyncio.sleep(0.005)
        stop.set()
        await asyncio.wait_for(runner, timeout=1)

        assert fetcher.calls >= 3

    @pytest.mark.asyncio
    async def test_tick_failure_does_not_end_loop(self, store, sample_dataset):
        fetcher = FakeFetcher([RuntimeError("unexpected"), sample_dataset])
        job = IngestionJob(fetcher, _publisher(store), interval_seconds=0.01)
        stop = asyncio.Event()

        runner = asyncio.create_task(job.run(stop))
        while fetcher.calls < 2 or await store.get_string("flights:version") is None:
            await asyncio.sleep(0.005)
        stop.set()
        await asyncio.wait_for(runner, timeout=1)

        assert fetcher.calls >= 2

    @pytest.mark.asyncio
    async def test_stop_interrupts_tick_in_progress(self, store):
        fetcher = BlockingFetcher()
        job = IngestionJob(fetcher, _publisher(store), interval_seconds=3600)
        stop = asyncio.Event()

        runner = asyncio.create_task(job.run(stop))
        await asyncio.wait_for(fetcher.started.wait(), timeout=1)
        stop.set()
        await asyncio.wait_for(runner, timeout=1)

        assert fetcher.cancelled
        assert await store.get_string("flights:version") is None

    @pytest.mark.asyncio
    async def test_preset_stop_skips_ticks(self, store):
        fetcher = FakeFetcher([])
        job = IngestionJob(fetcher, _publisher(store))
        stop = asyncio.Event()
        stop.set()

        await job.run(stop)
        assert fetcher.calls == 0


def _payload(records):
    return {
        "pagination": {"limit": 100, "offset": 0, "count": len(records), "total": len(records)},
        "data": records,
    }


class TestAviationStackClient:
    """Upstream fetch against a mocked HTTP transport."""

    @pytest.mark.asyncio
    async def test_fetch_parses_dataset(self, sample_records):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_payload(sample_records))

        client = AviationStackClient("secret", "http://flights.test/v1/flights",
                                     transport=httpx.MockTransport(handler))
        dataset = await client.fetch()

        assert [r.airline.iata for r in dataset.data] == ["MU", "FR", "6E"]
        assert dataset.pagination.total == 3
        assert seen[0].url.params["access_key"] == "secret"
        assert seen[0].headers["accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_without_key_sends_no_param(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=_payload([]))

        client = AviationStackClient(None, "http://flights.test/v1/flights",
                                     transport=httpx.MockTransport(handler))
        assert (await client.fetch()).is_empty
        assert "access_key" not in seen[0].url.params

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        client = AviationStackClient("k", "http://flights.test/v1/flights",
                                     transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        with pytest.raises(FetchError, match="503"):
            await client.fetch()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = AviationStackClient("k", "http://flights.test/v1/flights",
                                     transport=httpx.MockTransport(handler))
        with pytest.raises(FetchError):
            await client.fetch()

    @pytest.mark.asyncio
    async def test_invalid_payload(self):
        client = AviationStackClient("k", "http://flights.test/v1/flights",
                                     transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>")))
        with pytest.raises(FetchError, match="parsed"):
            await client.fetch()
