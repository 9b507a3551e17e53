"""Login attempt throttle.

Keeps a rolling window of failed-attempt timestamps per scope in persistent
storage. Once the window holds ``max_attempts`` failures the scope is locked
for ``lockout_s`` counted from the oldest retained failure.
"""

import json
import logging
import time
from typing import Callable, List

from pulsadash.domain.interfaces.storage import KeyValueStore
from pulsadash.domain.models.common import StorageKey, ThrottleScope, ThrottleStatus

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WINDOW_SECONDS = 60
DEFAULT_LOCKOUT_SECONDS = 15 * 60

Clock = Callable[[], float]


class AttemptThrottle:
    """Sliding window failure counter with lockout."""

    def __init__(
        self,
        store: KeyValueStore,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window_s: float = DEFAULT_WINDOW_SECONDS,
        lockout_s: float = DEFAULT_LOCKOUT_SECONDS,
        clock: Clock = time.time,
    ):
        """Initializes the throttle.

        Args:
            store: Persistent storage for the per-scope attempt lists.
            max_attempts: Failures inside the window that trigger a lockout.
            window_s: Length of the rolling window in seconds.
            lockout_s: Lockout duration in seconds.
            clock: Returns the current epoch time in seconds.
        """
        self.store = store
        self.max_attempts = max_attempts
        self.window_ms = int(window_s * 1000)
        self.lockout_ms = int(lockout_s * 1000)
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @staticmethod
    def _key(scope: ThrottleScope) -> StorageKey:
        return StorageKey(f"{scope}:attempts")

    def _load(self, scope: ThrottleScope) -> List[int]:
        raw = self.store.get(self._key(scope))
        if raw is None:
            return []
        try:
            attempts = json.loads(raw)
            if not isinstance(attempts, list):
                raise ValueError(f"expected a list, got {type(attempts).__name__}")
            return [int(ts) for ts in attempts]
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable attempt log for '{scope}': {e}")
            return []

    def _save(self, scope: ThrottleScope, attempts: List[int]) -> None:
        self.store.set(self._key(scope), json.dumps(attempts))

    def _recent(self, attempts: List[int], now: int) -> List[int]:
        return [ts for ts in attempts if now - ts < self.window_ms]

    def check(self, scope: ThrottleScope) -> ThrottleStatus:
        """Reports whether ``scope`` is currently locked out."""
        now = self._now_ms()
        recent = self._recent(self._load(scope), now)

        if len(recent) >= self.max_attempts:
            lockout_end = min(recent) + self.lockout_ms
            if now < lockout_end:
                return ThrottleStatus(blocked=True, remaining_ms=lockout_end - now)
            logger.info(f"Lockout for '{scope}' expired, clearing stale attempts.")
            self._save(scope, [])

        return ThrottleStatus(blocked=False)

    def record_failure(self, scope: ThrottleScope) -> ThrottleStatus:
        """Records a failed attempt.

        Returns:
            A blocked status with the full lockout duration if this failure
            reached the threshold, otherwise an unblocked status.
        """
        now = self._now_ms()
        attempts = self._load(scope)
        attempts.append(now)
        recent = self._recent(attempts, now)
        self._save(scope, recent)

        if len(recent) >= self.max_attempts:
            logger.warning(f"Too many failed attempts for '{scope}', locking for {self.lockout_ms // 1000}s.")
            return ThrottleStatus(blocked=True, remaining_ms=self.lockout_ms)
        logger.debug(f"Failed attempt {len(recent)}/{self.max_attempts} recorded for '{scope}'.")
        return ThrottleStatus(blocked=False)

    def clear_scope(self, scope: ThrottleScope) -> None:
        """Forgets all failures of ``scope`` (after a successful login)."""
        self.store.delete(self._key(scope))
