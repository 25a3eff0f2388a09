"""
Flight snapshot Pydantic models.

These mirror the envelope returned by the upstream flights API: a
pagination block plus an ordered list of flight leg observations. Only
``airline.iata``, ``departure.iata`` and ``arrival.iata`` take part in
filtering; everything else is carried as payload.
"""

from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, Field, ConfigDict


class Pagination(BaseModel):
    """Upstream paging information, informational only."""
    model_config = ConfigDict(populate_by_name=True)

    limit: Optional[int] = None
    offset: Optional[int] = None
    count: Optional[int] = None
    total: Optional[int] = None


class Airline(BaseModel):
    """Operating airline of a flight leg."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    iata: Optional[str] = Field(None, description="IATA airline code")
    icao: Optional[str] = Field(None, description="ICAO airline code")


class Endpoint(BaseModel):
    """Airport side of a flight leg with its timestamps."""
    model_config = ConfigDict(populate_by_name=True)

    airport: Optional[str] = None
    timezone: Optional[str] = None
    iata: Optional[str] = Field(None, description="IATA airport code")
    icao: Optional[str] = Field(None, description="ICAO airport code")
    terminal: Optional[str] = None
    gate: Optional[str] = None
    delay: Optional[int] = Field(None, description="Delay in minutes")
    scheduled: Optional[datetime] = None
    estimated: Optional[datetime] = None
    actual: Optional[datetime] = None
    estimated_runway: Optional[datetime] = None
    actual_runway: Optional[datetime] = None


class Departure(Endpoint):
    """Departure side of a flight leg."""


class Arrival(Endpoint):
    """Arrival side of a flight leg."""


class Codeshared(BaseModel):
    """Reference to the operating flight of a codeshare."""
    model_config = ConfigDict(populate_by_name=True)

    airline_name: Optional[str] = None
    airline_iata: Optional[str] = None
    airline_icao: Optional[str] = None
    flight_number: Optional[str] = None
    flight_iata: Optional[str] = None
    flight_icao: Optional[str] = None


class FlightInfo(BaseModel):
    """Flight designators."""
    model_config = ConfigDict(populate_by_name=True)

    number: Optional[str] = None
    iata: Optional[str] = None
    icao: Optional[str] = None
    codeshared: Optional[Codeshared] = None


class FlightRecord(BaseModel):
    """
    One flight leg observation.

    Unknown upstream fields are kept so they survive a publish round trip.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    flight_date: Optional[str] = None
    flight_status: Optional[str] = None
    departure: Optional[Departure] = None
    arrival: Optional[Arrival] = None
    airline: Optional[Airline] = None
    flight: Optional[FlightInfo] = None
    aircraft: Optional[Any] = None
    live: Optional[Any] = None


class Dataset(BaseModel):
    """
    Paginated collection of flight records as stored under the canonical key.

    ``ingested_at`` is stamped by the snapshot publisher and serialized as
    ``date_time``.
    """
    model_config = ConfigDict(populate_by_name=True)

    pagination: Optional[Pagination] = None
    data: List[FlightRecord] = Field(default_factory=list)
    ingested_at: Optional[datetime] = Field(None, alias="date_time")

    def to_store_json(self) -> str:
        """Serialize for the document store, omitting null fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @property
    def is_empty(self) -> bool:
        return not self.data
