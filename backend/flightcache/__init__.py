"""
Flight snapshot cache

Periodically ingests flight records from an upstream API, publishes them to
Valkey as a versioned JSON document with timestamped snapshots, and serves
airline/airport filtered subsets through a version-scoped query cache.
"""

__version__ = "0.1.0"
