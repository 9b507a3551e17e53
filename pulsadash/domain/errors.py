"""Exception hierarchy for the request layer."""

from typing import Optional


class PulsaDashError(Exception):
    """Base exception for this project."""


class ConfigurationError(PulsaDashError):
    """Raised when runtime configuration is invalid or missing."""


class AbortError(PulsaDashError):
    """Raised when a request is cancelled by its caller or times out.

    Never retried. Callers can catch it separately to suppress user-facing
    error messages for user-initiated aborts.
    """

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or "The operation was aborted"
        super().__init__(self.reason)


class LoginBlockedError(PulsaDashError):
    """Raised when a login is attempted while the throttle scope is locked."""

    def __init__(self, scope: str, remaining_ms: int):
        self.scope = scope
        self.remaining_ms = remaining_ms
        super().__init__(f"Too many failed attempts for '{scope}'. Retry in {remaining_ms // 1000}s.")
