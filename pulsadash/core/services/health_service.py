"""Backend health latency check with a short-lived cached result."""

import json
import logging
import time
from typing import Callable, Optional

import httpx

from pulsadash.domain.errors import AbortError
from pulsadash.domain.interfaces.storage import KeyValueStore
from pulsadash.domain.models.common import StorageKey
from pulsadash.infrastructure.resilience.api_retry import ApiRequestExecutor

logger = logging.getLogger(__name__)

HEALTH_CACHE_KEY = StorageKey("healthCheckCache")
DEFAULT_TTL_SECONDS = 2 * 60
DEFAULT_TIMEOUT_SECONDS = 5.0
UNAVAILABLE = "N/A"


class HealthCheckService:
    """Measures ``GET /health`` round-trip time for the dashboard status card."""

    def __init__(
        self,
        executor: ApiRequestExecutor,
        store: KeyValueStore,
        ttl_s: float = DEFAULT_TTL_SECONDS,
        timeout_s: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.executor = executor
        self.store = store
        self.ttl_s = ttl_s
        self.timeout_s = timeout_s
        self._clock = clock

    def get_cached(self) -> Optional[str]:
        """Returns the last measured response time if it is younger than the TTL."""
        raw = self.store.get(HEALTH_CACHE_KEY)
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
            value = str(entry["api_response_time"])
            captured_at = float(entry["timestamp"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable health check cache: {e}")
            self.store.delete(HEALTH_CACHE_KEY)
            return None
        if self._clock() - captured_at > self.ttl_s:
            self.store.delete(HEALTH_CACHE_KEY)
            return None
        return value

    async def measure_response_time(self) -> str:
        """Times one health request.

        Returns:
            e.g. '123ms', or 'N/A' when the backend is unhealthy or unreachable.
            Only successful measurements are cached.
        """
        start = time.perf_counter()
        try:
            response = await self.executor.execute("/health", retries=0, timeout_s=self.timeout_s)
        except (httpx.HTTPError, AbortError) as e:
            logger.debug(f"Health check failed: {type(e).__name__}: {e}")
            return UNAVAILABLE
        elapsed_ms = round((time.perf_counter() - start) * 1000)

        if not response.is_success:
            logger.debug(f"Health check returned HTTP {response.status_code}")
            return UNAVAILABLE

        result = f"{elapsed_ms}ms"
        self.store.set(HEALTH_CACHE_KEY, json.dumps({"api_response_time": result, "timestamp": self._clock()}))
        return result

    def clear(self) -> None:
        self.store.delete(HEALTH_CACHE_KEY)
