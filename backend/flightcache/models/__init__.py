"""
Flight cache Pydantic models package.

This package contains the snapshot envelope, flight record and query
filter models used for validation and serialization.
"""

from .flight import (
    Pagination,
    Airline,
    Endpoint,
    Departure,
    Arrival,
    Codeshared,
    FlightInfo,
    FlightRecord,
    Dataset,
)

from .query import FlightQuery

__all__ = [
    "Pagination",
    "Airline",
    "Endpoint",
    "Departure",
    "Arrival",
    "Codeshared",
    "FlightInfo",
    "FlightRecord",
    "Dataset",
    "FlightQuery",
]
