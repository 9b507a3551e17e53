"""Service for executing API calls with automatic retries.

Implements exponential backoff for transient failures (5xx responses and
network errors). Client errors (4xx) are handed back to the caller untouched,
and cancellation or timeout stops the call immediately.
"""

import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Tuple, Union

import httpx

from pulsadash.domain.errors import AbortError
from pulsadash.domain.events.api_events import (
    ApiCallFailed, ApiCallSucceeded, RequestAborted, RetryScheduled
)
from pulsadash.infrastructure.resilience.cancellation import AbortSignal
from pulsadash.infrastructure.resilience.endpoint_resolver import EndpointResolver

logger = logging.getLogger(__name__)

HeadersInput = Union[Mapping[str, str], List[Tuple[str, str]], httpx.Headers]
SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_TIMEOUT_S = 8.0
DEFAULT_RETRIES = 2
TOKEN_HEADER = "X-Token"


def dispatch_event(event: Any) -> None:
    logger.debug(f"EVENT: {event}")


def build_headers(caller_headers: Optional[HeadersInput] = None, token: Optional[str] = None) -> httpx.Headers:
    """Merges the default headers with caller-supplied ones.

    ``Content-Type: application/json`` and the static token are applied
    first; caller headers (mapping, list of pairs or httpx.Headers) override
    or extend them, matched case-insensitively.
    """
    headers = httpx.Headers({"Content-Type": "application/json"})
    if token:
        headers[TOKEN_HEADER] = token
    if caller_headers is not None:
        for name, value in httpx.Headers(caller_headers).multi_items():
            headers[name] = value
    return headers


def encode_body(body: Any) -> Optional[Union[str, bytes]]:
    if body is None or isinstance(body, (str, bytes)):
        return body
    return json.dumps(body)


class ApiRequestExecutor:
    """Issues HTTP calls through the resolved endpoint with timeout and retries."""

    def __init__(
        self,
        resolver: EndpointResolver,
        client: Optional[httpx.AsyncClient] = None,
        token: Optional[str] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        initial_backoff_s: float = 1.0,
        backoff_factor: float = 2.0,
        max_backoff_s: float = 3.0,
        retries: int = DEFAULT_RETRIES,
        sleep: SleepFn = asyncio.sleep,
    ):
        """Initializes the ApiRequestExecutor.

        Args:
            resolver: Supplies the base URL for every call.
            client: Optional shared HTTP client. A private one without
                transport-level timeouts is created when omitted, so the
                executor's own timeout policy is the only bound.
            token: Static X-Token header value attached to every call.
            timeout_s: Per-attempt bound applied when the caller passes no signal.
            initial_backoff_s: Delay before the first retry.
            backoff_factor: Multiplier for each following retry.
            max_backoff_s: Upper bound of a single backoff delay.
            retries: Default number of additional attempts per call.
            sleep: Awaitable sleep used between attempts.
        """
        self.resolver = resolver
        self._client = client or httpx.AsyncClient(timeout=None)
        self._owns_client = client is None
        self.token = token
        self.timeout_s = timeout_s
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self.max_backoff_s = max_backoff_s
        self.retries = retries
        self._sleep = sleep

        logger.debug(
            f"ApiRequestExecutor initialized: timeout={timeout_s}s, "
            f"backoff={initial_backoff_s}s x{backoff_factor} (max {max_backoff_s}s)"
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay after the zero-based ``attempt`` failed."""
        return min(self.initial_backoff_s * (self.backoff_factor ** attempt), self.max_backoff_s)

    async def execute(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Optional[HeadersInput] = None,
        body: Any = None,
        params: Optional[Mapping[str, str]] = None,
        signal: Optional[AbortSignal] = None,
        retries: Optional[int] = None,
        timeout_s: Optional[float] = None,
    ) -> httpx.Response:
        """Performs a call, retrying transient failures.

        Args:
            path: Path appended to the resolved endpoint (e.g. '/members').
            method: HTTP method.
            headers: Extra headers; override the defaults.
            body: dict/list bodies are JSON-encoded, str/bytes sent as-is.
            params: Query string parameters.
            signal: Caller cancellation. When given, no internal timeout is applied.
            retries: Additional attempts after the first one (executor default if None).
            timeout_s: Overrides the executor timeout for this call.

        Returns:
            The first non-5xx response, or the last 5xx response once
            retries are exhausted. Non-2xx responses are returned, not raised.

        Raises:
            AbortError: On cancellation or timeout. Never retried.
            httpx.TransportError: If every attempt failed without a response.
        """
        retries = max(self.retries if retries is None else retries, 0)
        if signal is not None:
            signal.raise_if_aborted()

        endpoint = await self._guarded(self.resolver.resolve(), signal)
        url = f"{endpoint}{path}"
        method = method.upper()
        merged_headers = build_headers(headers, self.token)
        content = encode_body(body)

        last_response: Optional[httpx.Response] = None
        last_error: Optional[Exception] = None

        for attempt in range(retries + 1):
            request = self._client.build_request(
                method, url, headers=merged_headers, content=content, params=params
            )
            start_time = time.perf_counter()
            try:
                response = await self._send(request, signal, timeout_s)
            except AbortError as e:
                logger.info(f"{method} {url} aborted on attempt {attempt + 1}: {e.reason}")
                dispatch_event(RequestAborted(method=method, url=url, reason=e.reason))
                raise
            except httpx.TransportError as e:
                last_error = e
                logger.warning(
                    f"Network error calling {method} {url} on attempt {attempt + 1}/{retries + 1}: "
                    f"{type(e).__name__}: {e}"
                )
            else:
                if response.status_code < 500:
                    latency_ms = (time.perf_counter() - start_time) * 1000
                    dispatch_event(ApiCallSucceeded(
                        method=method, url=url, status_code=response.status_code,
                        attempts=attempt + 1, latency_ms=latency_ms,
                    ))
                    return response
                last_response = response
                logger.warning(
                    f"Server error {response.status_code} from {method} {url} "
                    f"on attempt {attempt + 1}/{retries + 1}"
                )

            if attempt < retries:
                delay = self.backoff_delay(attempt)
                dispatch_event(RetryScheduled(method=method, url=url, attempt_number=attempt + 1, delay_seconds=delay))
                logger.debug(f"Retrying {method} {url} in {delay:.2f}s")
                await self._guarded(self._sleep(delay), signal)

        if last_response is not None:
            logger.error(f"Giving up on {method} {url} after {retries + 1} attempts (HTTP {last_response.status_code})")
            dispatch_event(ApiCallFailed(
                method=method, url=url, error_type="HTTPStatus",
                error_message=last_response.reason_phrase, status_code=last_response.status_code,
            ))
            return last_response

        logger.error(f"Giving up on {method} {url} after {retries + 1} attempts: {last_error}")
        dispatch_event(ApiCallFailed(
            method=method, url=url, error_type=type(last_error).__name__, error_message=str(last_error),
        ))
        raise last_error

    async def _send(
        self, request: httpx.Request, signal: Optional[AbortSignal], timeout_s: Optional[float]
    ) -> httpx.Response:
        if signal is not None:
            return await signal.guard(self._client.send(request))

        bound = self.timeout_s if timeout_s is None else timeout_s
        try:
            return await asyncio.wait_for(self._client.send(request), timeout=bound)
        except asyncio.TimeoutError as e:
            raise AbortError(f"Request timed out after {bound}s") from e

    @staticmethod
    async def _guarded(awaitable: Awaitable[Any], signal: Optional[AbortSignal]) -> Any:
        if signal is None:
            return await awaitable
        return await signal.guard(awaitable)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
