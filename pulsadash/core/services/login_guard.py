"""Login screen flow around the attempt throttle."""

import logging
from typing import Awaitable, Callable

from pulsadash.domain.errors import LoginBlockedError
from pulsadash.domain.models.common import ThrottleScope, ThrottleStatus
from pulsadash.infrastructure.resilience.attempt_throttle import AttemptThrottle

logger = logging.getLogger(__name__)

ADMIN_LOGIN = ThrottleScope("admin-login")
MEMBER_LOGIN = ThrottleScope("member-login")


def format_remaining(remaining_ms: int) -> str:
    """Formats a lockout countdown as m:ss."""
    remaining_ms = max(remaining_ms, 0)
    minutes = remaining_ms // 60000
    seconds = (remaining_ms % 60000) // 1000
    return f"{minutes}:{seconds:02d}"


class LoginGuard:
    """Gates login attempts for one scope."""

    def __init__(self, throttle: AttemptThrottle, scope: ThrottleScope):
        self.throttle = throttle
        self.scope = scope

    def status(self) -> ThrottleStatus:
        return self.throttle.check(self.scope)

    async def attempt(self, login: Callable[[], Awaitable[bool]]) -> ThrottleStatus:
        """Runs ``login`` unless the scope is locked.

        Args:
            login: Performs the credential check; returns True on success.
                An exception it raises (e.g. a network error) is counted
                as a failed attempt and re-raised.

        Returns:
            The throttle status after the attempt.

        Raises:
            LoginBlockedError: If the scope is locked; ``login`` is not called.
        """
        current = self.throttle.check(self.scope)
        if current.blocked:
            raise LoginBlockedError(self.scope, current.remaining_ms)

        try:
            succeeded = await login()
        except Exception:
            status = self.throttle.record_failure(self.scope)
            logger.info(f"Login for '{self.scope}' raised, counted as a failed attempt (blocked={status.blocked}).")
            raise

        if succeeded:
            self.throttle.clear_scope(self.scope)
            logger.info(f"Login succeeded for '{self.scope}', attempts cleared.")
            return ThrottleStatus(blocked=False)

        return self.throttle.record_failure(self.scope)
