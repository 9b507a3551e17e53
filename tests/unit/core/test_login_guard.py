import json

import pytest
from unittest.mock import AsyncMock

from pulsadash.core.services.login_guard import ADMIN_LOGIN, MEMBER_LOGIN, LoginGuard, format_remaining
from pulsadash.domain.errors import LoginBlockedError
from pulsadash.domain.models.common import ThrottleStatus
from pulsadash.infrastructure.resilience.attempt_throttle import AttemptThrottle


@pytest.fixture
def guard(store, clock):
    return LoginGuard(AttemptThrottle(store, clock=clock), ADMIN_LOGIN)


@pytest.mark.parametrize("remaining_ms, expected", [
    (900_000, "15:00"),
    (896_000, "14:56"),
    (59_999, "0:59"),
    (0, "0:00"),
    (-5, "0:00"),
])
def test_format_remaining(remaining_ms, expected):
    assert format_remaining(remaining_ms) == expected


@pytest.mark.asyncio
async def test_failed_logins_lock_the_scope(guard):
    login = AsyncMock(return_value=False)

    for _ in range(4):
        assert await guard.attempt(login) == ThrottleStatus(blocked=False)
    status = await guard.attempt(login)

    assert status == ThrottleStatus(blocked=True, remaining_ms=900_000)
    assert guard.status().blocked


@pytest.mark.asyncio
async def test_locked_scope_rejects_without_calling_login(guard):
    failing = AsyncMock(return_value=False)
    for _ in range(5):
        await guard.attempt(failing)

    login = AsyncMock(return_value=True)
    with pytest.raises(LoginBlockedError) as excinfo:
        await guard.attempt(login)

    login.assert_not_awaited()
    assert excinfo.value.scope == ADMIN_LOGIN
    assert excinfo.value.remaining_ms == 900_000


@pytest.mark.asyncio
async def test_successful_login_clears_failures(guard, store):
    await guard.attempt(AsyncMock(return_value=False))
    await guard.attempt(AsyncMock(return_value=False))

    assert await guard.attempt(AsyncMock(return_value=True)) == ThrottleStatus(blocked=False)
    assert store.get("admin-login:attempts") is None


@pytest.mark.asyncio
async def test_network_errors_count_as_failed_attempts(guard, store, mocker):
    login = mocker.AsyncMock(side_effect=ConnectionError("offline"))

    for _ in range(5):
        with pytest.raises(ConnectionError):
            await guard.attempt(login)

    assert len(json.loads(store.get("admin-login:attempts"))) == 5
    assert guard.status().blocked
    with pytest.raises(LoginBlockedError):
        await guard.attempt(login)
    assert login.await_count == 5


@pytest.mark.asyncio
async def test_member_scope_is_separate(store, clock):
    throttle = AttemptThrottle(store, clock=clock)
    admin = LoginGuard(throttle, ADMIN_LOGIN)
    for _ in range(5):
        await admin.attempt(AsyncMock(return_value=False))

    assert not LoginGuard(throttle, MEMBER_LOGIN).status().blocked
