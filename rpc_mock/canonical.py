"""Canonical JSON - deterministic re-serialization for structural equality.

Two documents are structurally equal when their canonical forms are equal
byte-for-byte. Key order and whitespace never matter. Numbers compare by
value, so 1 and 1.0 are the same number.
"""

from __future__ import annotations

import json
import math
from typing import Any


class CanonicalizationError(ValueError):
    """Raised when input cannot be parsed as JSON."""


def canonical_json(raw: bytes | str) -> bytes:
    """Parse raw JSON text and return its canonical serialization.

    Raises:
        CanonicalizationError: If raw is not a single valid JSON document.
    """
    return canonicalize(parse_json(raw))


def canonicalize(value: Any) -> bytes:
    """Serialize an already-parsed JSON value in canonical form."""
    return json.dumps(
        _normalize(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def parse_json(raw: bytes | str) -> Any:
    """Decode one JSON document, wrapping decoder failures."""
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CanonicalizationError(f"Invalid JSON: {e}") from e


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are accepted by the json module but are not JSON
    raise CanonicalizationError(f"Invalid JSON: unsupported constant {name}")


def _normalize(value: Any) -> Any:
    # bool is an int subclass and must stay a bool
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError as e:
            raise CanonicalizationError(f"Number out of range: {e}") from e
        # json.loads turns literals such as 1e400 into inf
        if not math.isfinite(number):
            raise CanonicalizationError(f"Number out of range: {value}")
        return number
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    raise CanonicalizationError(f"Unsupported JSON value type: {type(value).__name__}")
