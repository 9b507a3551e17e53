import asyncio
import json

import httpx
import pytest

from pulsadash.core.services.health_service import HEALTH_CACHE_KEY, UNAVAILABLE, HealthCheckService
from pulsadash.infrastructure.resilience.api_retry import ApiRequestExecutor
from pulsadash.infrastructure.resilience.endpoint_resolver import EndpointResolver


@pytest.fixture
def build_service(make_client, store, clock, recording_sleep):
    def _build(handler, timeout_s=5.0):
        client = make_client(handler)
        executor = ApiRequestExecutor(
            EndpointResolver(["https://api.example.com"], client=client), client=client, sleep=recording_sleep
        )
        return HealthCheckService(executor, store, timeout_s=timeout_s, clock=clock)
    return _build


def counting_handler(status, calls):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(status, json={"status": "ok"})
    return handler


@pytest.mark.asyncio
async def test_successful_measurement_is_cached(build_service, store, clock):
    service = build_service(counting_handler(200, []))

    result = await service.measure_response_time()

    assert result.endswith("ms")
    assert int(result[:-2]) >= 0
    assert service.get_cached() == result
    assert json.loads(store.get(HEALTH_CACHE_KEY)) == {"api_response_time": result, "timestamp": clock()}


@pytest.mark.asyncio
async def test_cached_value_expires(build_service, store, clock):
    service = build_service(counting_handler(200, []))
    result = await service.measure_response_time()

    clock.advance(120)
    assert service.get_cached() == result

    clock.advance(1)
    assert service.get_cached() is None
    assert store.get(HEALTH_CACHE_KEY) is None


@pytest.mark.asyncio
async def test_unhealthy_backend_reports_unavailable_without_retry(build_service, store, recording_sleep):
    calls = []
    service = build_service(counting_handler(503, calls))

    assert await service.measure_response_time() == UNAVAILABLE
    assert store.get(HEALTH_CACHE_KEY) is None
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_unreachable_backend_reports_unavailable(build_service):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    assert await build_service(handler).measure_response_time() == UNAVAILABLE


@pytest.mark.asyncio
async def test_slow_backend_times_out(build_service):
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/health" and request.url.host == "api.example.com":
            await asyncio.sleep(0.2)
        return httpx.Response(200)

    service = build_service(handler, timeout_s=0.05)

    assert await service.measure_response_time() == UNAVAILABLE


def test_corrupt_cache_is_discarded(build_service, store):
    store.set(HEALTH_CACHE_KEY, "{broken")
    service = build_service(counting_handler(200, []))

    assert service.get_cached() is None
    assert store.get(HEALTH_CACHE_KEY) is None


def test_clear(build_service, store, clock):
    store.set(HEALTH_CACHE_KEY, json.dumps({"api_response_time": "10ms", "timestamp": clock()}))
    service = build_service(counting_handler(200, []))

    service.clear()

    assert service.get_cached() is None
