"""
Tests for the flight snapshot and query models.
"""

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from flightcache.models import Dataset, FlightQuery, FlightRecord

from conftest import make_record


class TestDataset:
    """Snapshot envelope parsing and serialization."""

    def test_parse_upstream_payload(self, sample_records):
        dataset = Dataset.model_validate({"pagination": {"limit": 100, "total": 3}, "data": sample_records})

        assert len(dataset.data) == 3
        assert dataset.data[0].departure.iata == "PVG"
        assert dataset.data[0].departure.delay == 12
        assert dataset.data[0].flight.iata == "MU5501"
        assert dataset.pagination.limit == 100
        assert dataset.ingested_at is None

    def test_ingested_at_serialized_as_date_time(self):
        stamp = datetime(2025, 10, 10, 5, 0, tzinfo=timezone.utc)
        dataset = Dataset(ingested_at=stamp)

        document = json.loads(dataset.to_store_json())
        assert "date_time" in document
        assert "ingested_at" not in document
        assert Dataset.model_validate_json(dataset.to_store_json()).ingested_at == stamp

    def test_nulls_are_omitted(self):
        document = json.loads(Dataset.model_validate({"data": [make_record("MU", "PVG", "DNH")]}).to_store_json())
        record = document["data"][0]
        assert "live" not in record
        assert "gate" not in record["departure"]
        assert "pagination" not in document

    def test_unknown_fields_survive(self):
        record = make_record("FR", "OTP", "BGY")
        record["codeshare_note"] = "operated by partner"
        dataset = Dataset.model_validate({"data": [record]})
        assert json.loads(dataset.to_store_json())["data"][0]["codeshare_note"] == "operated by partner"

    def test_codeshared(self):
        record = make_record("MU", "PVG", "DNH")
        record["flight"]["codeshared"] = {"airline_iata": "AF", "flight_iata": "AF1234"}
        parsed = FlightRecord.model_validate(record)
        assert parsed.flight.codeshared.flight_iata == "AF1234"

    def test_empty(self):
        assert Dataset().is_empty
        assert Dataset().data == []

    def test_live_and_aircraft_pass_through(self):
        record = make_record("6E", "DEL", "HBX")
        record["aircraft"] = {"registration": "VT-IZX"}
        record["live"] = {"altitude": 10000.5}
        parsed = FlightRecord.model_validate(record)
        assert parsed.aircraft == {"registration": "VT-IZX"}
        assert parsed.live["altitude"] == 10000.5


class TestFlightQuery:
    """Filter normalization, matching and structured paths."""

    def test_codes_are_trimmed_and_upper_cased(self):
        query = FlightQuery(airline_iata=" mu ", airport_iata="pvg")
        assert query.airline_iata == "MU"
        assert query.airport_iata == "PVG"

    @pytest.mark.parametrize("blank", [None, "", "   "])
    def test_blank_means_unfiltered(self, blank):
        query = FlightQuery(airline_iata=blank, airport_iata=blank)
        assert query.is_unfiltered
        assert query.airline_iata is None

    @pytest.mark.parametrize("bad", ['MU"', "M U", "ABCDEFGHI", "MU||1", "PV$"])
    def test_unsafe_codes_are_rejected(self, bad):
        with pytest.raises(ValidationError):
            FlightQuery(airline_iata=bad)

    def test_query_is_frozen(self):
        query = FlightQuery(airline_iata="MU")
        with pytest.raises(ValidationError):
            query.airline_iata = "FR"

    def test_equal_queries_hash_equal(self):
        assert FlightQuery(airline_iata="mu") == FlightQuery(airline_iata="MU")
        assert hash(FlightQuery(airline_iata="mu")) == hash(FlightQuery(airline_iata="MU"))

    def test_matches_airline_or_either_airport(self):
        query = FlightQuery(airline_iata="MU", airport_iata="BGY")
        assert query.matches(make_record("MU", "PVG", "DNH"))
        assert query.matches(make_record("FR", "OTP", "BGY"))
        assert query.matches(make_record("FR", "BGY", "OTP"))
        assert not query.matches(make_record("6E", "DEL", "HBX"))

    def test_matching_tolerates_missing_sections(self):
        query = FlightQuery(airline_iata="MU", airport_iata="PVG")
        assert not query.matches({})
        assert not query.matches({"airline": None, "departure": "PVG"})
        assert not query.matches({"airline": {"iata": None}})
        assert FlightQuery().matches({})

    def test_record_codes_must_match_exactly(self):
        query = FlightQuery(airline_iata="mu", airport_iata="pvg")
        assert query.matches({"airline": {"iata": "MU"}})
        assert not query.matches({"airline": {"iata": "mu"}})
        assert not query.matches({"departure": {"iata": "pvg"}})

    def test_json_path_all(self):
        assert FlightQuery().to_json_path() == "$.data[*]"

    def test_json_path_airline(self):
        assert FlightQuery(airline_iata="MU").to_json_path() == '$.data[?(@.airline.iata=="MU")]'

    def test_json_path_airline_or_airport(self):
        assert FlightQuery(airline_iata="MU", airport_iata="OTP").to_json_path() == (
            '$.data[?(@.airline.iata=="MU" || @.departure.iata=="OTP" || @.arrival.iata=="OTP")]'
        )
