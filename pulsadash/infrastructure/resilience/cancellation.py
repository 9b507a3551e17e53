"""Caller-controlled cancellation for in-flight requests and backoff waits."""

import asyncio
from typing import Awaitable, Optional, TypeVar

from pulsadash.domain.errors import AbortError

T = TypeVar("T")


class AbortSignal:
    """A one-shot cancellation flag that can interrupt awaits.

    A caller creates the signal, hands it to the executor and calls
    ``abort()`` (e.g. when the user navigates away). Every await guarded by
    the signal then fails with AbortError.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def abort(self, reason: str = "The operation was aborted") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_aborted(self) -> None:
        if self.aborted:
            raise AbortError(self.reason)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Awaits ``awaitable`` unless the signal fires first.

        Raises:
            AbortError: If the signal is (or becomes) aborted before the
                awaitable completes. The awaitable is cancelled.
        """
        work = asyncio.ensure_future(awaitable)
        if self.aborted:
            work.cancel()
            raise AbortError(self.reason)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not work.done():
                work.cancel()
        if work in done:
            return work.result()
        raise AbortError(self.reason)
