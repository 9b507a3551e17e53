"""Domain Events related to endpoint discovery and API calls.

Examples include events for when an endpoint is resolved, a retry is
scheduled, or a call fails or is aborted.
"""

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class EndpointResolved(DomainEvent):
    """Event triggered when a candidate passes its health probe."""
    endpoint: str
    probes: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class EndpointFallbackUsed(DomainEvent):
    """Event triggered when every candidate failed and the first one is used."""
    endpoint: str
    candidates: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an API call returns a non-retryable response."""
    method: str
    url: str
    status_code: int
    attempts: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an API call fails definitively (after retries)."""
    method: str
    url: str
    error_type: str
    error_message: str
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed API call."""
    method: str
    url: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestAborted(DomainEvent):
    """Event triggered when a call is cancelled or times out."""
    method: str
    url: str
    reason: str
    timestamp: float = field(default_factory=time.time)
