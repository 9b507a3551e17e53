"""Defines common Value Objects used across the request layer.

These objects represent simple values like endpoints, filter signatures
and throttle scopes, ensuring consistency and type safety.
"""

import json
from dataclasses import dataclass
from typing import NewType, Optional, Sequence

# === Endpoint Discovery ===
Endpoint = NewType("Endpoint", str)              # Candidate backend base URL

# === Caching Context ===
FilterSignature = NewType("FilterSignature", str)  # Deterministic key for a filter combination
StorageKey = NewType("StorageKey", str)            # Key in the persistent key-value store

# === Throttling Context ===
ThrottleScope = NewType("ThrottleScope", str)    # e.g. 'admin-login', 'member-login'


@dataclass(frozen=True)
class ThrottleStatus:
    """Result of a throttle evaluation."""
    blocked: bool
    remaining_ms: int = 0


def filter_signature(values: Sequence[Optional[str]]) -> FilterSignature:
    """Builds the signature for an ordered tuple of filter values.

    ``None`` and the empty string are the same filter value. Values are
    JSON-encoded as a list so separators inside a value cannot make two
    different tuples collide.
    """
    normalized = ["" if value is None else str(value) for value in values]
    return FilterSignature(json.dumps(normalized, ensure_ascii=False, separators=(",", ":")))
