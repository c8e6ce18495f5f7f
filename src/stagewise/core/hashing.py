"""
Deterministic fingerprints for unit creation requests.

A unit's fingerprint is the hash of its kind and its constructor arguments
in canonical form.  The registry compares fingerprints to tell an
idempotent re-run (same name, same fingerprint) from configuration drift
(same name, different fingerprint).

Canonical form:
    - tuples and lists both become JSON arrays
    - ints are preserved exactly (no float coercion of large values)
    - mappings are serialized with sorted keys
    - objects exposing an ``identity`` attribute (units) hash as that identity
    - Decimal values hash as their string form

Examples:
    >>> compute_fingerprint("Pool", ["0xabc", 10**24]) == compute_fingerprint("Pool", ("0xabc", 10**24))
    True
    >>> compute_fingerprint("Pool", []) != compute_fingerprint("Vault", [])
    True

Tags:
    hashing, fingerprint, idempotency, stagewise
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any


def canonicalize(value: Any) -> Any:
    """Convert ``value`` into a JSON-compatible canonical structure."""
    if value is None or isinstance(value, bool | int | str):
        return value
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bytes):
        return "0x" + value.hex()
    identity = getattr(value, "identity", None)
    if isinstance(identity, str):
        return identity
    if isinstance(value, Mapping):
        return {str(k): canonicalize(v) for k, v in value.items()}
    if isinstance(value, Sequence):
        return [canonicalize(v) for v in value]
    raise TypeError(f"Cannot canonicalize value of type {type(value).__name__}: {value!r}")


def compute_hash(*values: Any, length: int = 64) -> str:
    """
    Compute a deterministic SHA-256 hash from values.

    Args:
        *values: Values to hash (canonicalized first)
        length: Hex digest length (default 64 = full digest)

    Returns:
        Hex string of specified length
    """
    payload = json.dumps(
        [canonicalize(v) for v in values],
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:length]


def compute_fingerprint(kind: str, args: Sequence[Any]) -> str:
    """Fingerprint of a creation request: kind plus canonical constructor args."""
    return compute_hash(kind, list(args))


__all__ = ["canonicalize", "compute_hash", "compute_fingerprint"]
