"""
Shape store results into a flat JSON array of records.

Valkey JSON returns one result set per matched root, so a structured read
or a ``$`` read of a cached array comes back as ``[[...]]``. Legacy
readers may also hand over the bare ``{"pagination": ..., "data": [...]}``
envelope. All of these collapse to the bare record array; anything
unrecognized is handed back untouched.
"""

import json
from typing import Any


def dump_json(value: Any) -> str:
    """Compact, stable JSON text used for every payload the cache emits."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def normalize(raw: Any) -> Any:
    """
    Canonicalize a raw store result to a flat JSON array.

    - ``[[...]]`` (array whose single element is an array) is unwrapped once
    - a plain array is returned as-is
    - an object with a ``data`` array returns that array
    - anything else, including unparseable input, is returned unchanged

    Never raises.
    """
    try:
        root = json.loads(raw)
    except (TypeError, ValueError):
        return raw

    if isinstance(root, list) and len(root) == 1 and isinstance(root[0], list):
        return dump_json(root[0])

    if isinstance(root, list):
        return dump_json(root)

    if isinstance(root, dict) and isinstance(root.get("data"), list):
        return dump_json(root["data"])

    return raw
