import json

from pulsadash.domain.models.common import ThrottleScope, ThrottleStatus
from pulsadash.infrastructure.resilience.attempt_throttle import AttemptThrottle

SCOPE = ThrottleScope("admin-login")


def fail_times(throttle, count, clock=None, step_s=0.0):
    status = None
    for _ in range(count):
        status = throttle.record_failure(SCOPE)
        if clock is not None:
            clock.advance(step_s)
    return status


def test_five_failures_lock_the_scope(store, clock):
    """Five failures one second apart: the fifth reports a 15 minute lockout."""
    throttle = AttemptThrottle(store, clock=clock)

    for _ in range(4):
        assert throttle.record_failure(SCOPE) == ThrottleStatus(blocked=False)
        clock.advance(1)
    fifth = throttle.record_failure(SCOPE)

    assert fifth == ThrottleStatus(blocked=True, remaining_ms=900_000)

    status = throttle.check(SCOPE)
    assert status.blocked
    # Lockout counts from the oldest retained failure, four seconds ago.
    assert status.remaining_ms == 896_000


def test_four_failures_do_not_lock(store, clock):
    throttle = AttemptThrottle(store, clock=clock)

    fail_times(throttle, 4, clock, step_s=1)

    assert throttle.check(SCOPE) == ThrottleStatus(blocked=False)


def test_failures_outside_window_are_forgotten(store, clock):
    throttle = AttemptThrottle(store, clock=clock)

    status = fail_times(throttle, 10, clock, step_s=20)

    assert status == ThrottleStatus(blocked=False)
    assert not throttle.check(SCOPE).blocked
    assert len(json.loads(store.get("admin-login:attempts"))) <= 3


def test_clear_scope_unblocks(store, clock):
    throttle = AttemptThrottle(store, clock=clock)
    fail_times(throttle, 5)
    assert throttle.check(SCOPE).blocked

    throttle.clear_scope(SCOPE)

    assert throttle.check(SCOPE) == ThrottleStatus(blocked=False)
    assert "admin-login:attempts" not in store


def test_scopes_are_independent(store, clock):
    throttle = AttemptThrottle(store, clock=clock)
    fail_times(throttle, 5)

    assert throttle.check(SCOPE).blocked
    assert not throttle.check(ThrottleScope("member-login")).blocked


def test_expired_lockout_clears_stored_attempts(store, clock):
    throttle = AttemptThrottle(store, window_s=1000, lockout_s=100, clock=clock)
    fail_times(throttle, 5)
    assert throttle.check(SCOPE).blocked

    clock.advance(101)

    assert throttle.check(SCOPE) == ThrottleStatus(blocked=False)
    assert store.get("admin-login:attempts") == "[]"


def test_attempts_persist_across_instances(store, clock):
    fail_times(AttemptThrottle(store, clock=clock), 5)

    assert AttemptThrottle(store, clock=clock).check(SCOPE).blocked


def test_corrupt_attempt_log_is_treated_as_empty(store, clock, caplog):
    store.set("admin-login:attempts", "{not json")
    throttle = AttemptThrottle(store, clock=clock)

    assert throttle.check(SCOPE) == ThrottleStatus(blocked=False)
    assert throttle.record_failure(SCOPE) == ThrottleStatus(blocked=False)
    assert len(json.loads(store.get("admin-login:attempts"))) == 1
    assert "unreadable attempt log" in caplog.text


def test_non_list_attempt_log_is_treated_as_empty(store, clock):
    store.set("admin-login:attempts", json.dumps({"count": 9}))

    assert not AttemptThrottle(store, clock=clock).check(SCOPE).blocked
