"""Endpoint discovery with failover.

Probes an ordered list of candidate backend URLs and memoizes the first
healthy one. Concurrent callers share a single probe sequence, so every
dashboard panel mounting at once triggers only one round of health checks.
"""

import asyncio
import logging
from typing import Any, Optional, Sequence

import httpx

from pulsadash.domain.errors import ConfigurationError
from pulsadash.domain.events.api_events import EndpointFallbackUsed, EndpointResolved
from pulsadash.domain.models.common import Endpoint

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT_S = 2.0
HEALTH_PATH = "/health"


def dispatch_event(event: Any) -> None:
    logger.debug(f"EVENT: {event}")


class EndpointResolver:
    """Resolves and caches the active backend endpoint."""

    def __init__(
        self,
        candidates: Sequence[str],
        client: Optional[httpx.AsyncClient] = None,
        probe_timeout_s: float = DEFAULT_PROBE_TIMEOUT_S,
    ):
        """Initializes the resolver.

        Args:
            candidates: Candidate base URLs in probe priority order.
            client: Optional shared HTTP client. A private one is created
                (and closed by aclose()) when omitted.
            probe_timeout_s: Upper bound for one health probe.

        Raises:
            ConfigurationError: If no candidate is given.
        """
        if not candidates:
            raise ConfigurationError("At least one API endpoint must be configured")
        self.candidates = tuple(Endpoint(c) for c in candidates)
        self.probe_timeout_s = probe_timeout_s
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None
        self._resolved: Optional[Endpoint] = None
        self._inflight: Optional["asyncio.Task[Endpoint]"] = None
        self._fallback_warned = False
        self.probe_count = 0

    @property
    def resolved(self) -> Optional[Endpoint]:
        return self._resolved

    async def resolve(self) -> Endpoint:
        """Returns the active endpoint, probing candidates if none is cached."""
        if self._resolved is not None:
            return self._resolved

        if self._inflight is None:
            task = asyncio.ensure_future(self._probe_candidates())
            self._inflight = task
            task.add_done_callback(self._forget_inflight)
        else:
            logger.debug("Endpoint resolution already in flight, joining it.")
        # Shielded: one caller being cancelled must not cancel the shared probe.
        return await asyncio.shield(self._inflight)

    def _forget_inflight(self, task: "asyncio.Task[Endpoint]") -> None:
        if self._inflight is task:
            self._inflight = None

    def clear(self) -> None:
        """Forgets the resolved endpoint and re-arms the fallback warning."""
        self._resolved = None
        self._inflight = None
        self._fallback_warned = False
        logger.info("Cleared cached API endpoint.")

    def _is_current(self) -> bool:
        """False once clear() detached the running probe sequence."""
        return self._inflight is asyncio.current_task()

    async def _probe_candidates(self) -> Endpoint:
        for index, endpoint in enumerate(self.candidates, start=1):
            if await self._probe(endpoint):
                if not self._is_current():
                    logger.debug(f"Discarding probe result {endpoint}, resolver was cleared meanwhile")
                    return endpoint
                self._resolved = endpoint
                self._fallback_warned = False
                logger.info(f"Using API endpoint {endpoint}")
                dispatch_event(EndpointResolved(endpoint=endpoint, probes=index))
                return endpoint

        fallback = self.candidates[0]
        if not self._is_current():
            return fallback
        self._resolved = fallback
        if not self._fallback_warned:
            self._fallback_warned = True
            logger.warning(
                f"All {len(self.candidates)} API endpoints failed their health check, "
                f"falling back to {fallback}"
            )
        else:
            logger.debug(f"All API endpoints still failing, using fallback {fallback}")
        dispatch_event(EndpointFallbackUsed(endpoint=fallback, candidates=len(self.candidates)))
        return fallback

    async def _probe(self, endpoint: Endpoint) -> bool:
        """Returns True if ``GET {endpoint}/health`` answers 2xx within the bound."""
        self.probe_count += 1
        try:
            response = await asyncio.wait_for(
                self._client.get(f"{endpoint}{HEALTH_PATH}", headers={"Content-Type": "application/json"}),
                timeout=self.probe_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.debug(f"Endpoint {endpoint} health probe timed out after {self.probe_timeout_s}s")
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Endpoint {endpoint} is not available: {type(e).__name__}: {e}")
            return False

        if response.is_success:
            return True
        logger.debug(f"Endpoint {endpoint} health probe returned HTTP {response.status_code}")
        return False

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
