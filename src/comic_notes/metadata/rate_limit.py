from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

from comic_notes.cancellation import CancellationToken, cancellable_sleep


class RateLimiter:
    """
    Single-flight spacing gate for outbound API requests.

    Only one caller at a time may be inside the wait-then-dispatch sequence.
    A caller that arrives while the previous spacing window is still open
    waits until `min_interval_s` has passed since the previous *dispatch*,
    regardless of when the caller itself started.
    """

    def __init__(
        self,
        min_interval_s: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if min_interval_s < 0:
            raise ValueError("min_interval_s must be >= 0")
        self.min_interval_s = min_interval_s
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_dispatch: float | None = None

    @property
    def last_dispatch(self) -> float | None:
        return self._last_dispatch

    def remaining(self) -> float:
        """Seconds left before the next dispatch is allowed."""
        if self._last_dispatch is None:
            return 0.0
        elapsed = self._clock() - self._last_dispatch
        return max(0.0, self.min_interval_s - elapsed)

    async def acquire(self, token: CancellationToken | None = None) -> float:
        """
        Wait for the spacing window, then claim a dispatch slot.

        Returns the dispatch timestamp. Raises `Cancelled` if `token` fires
        while waiting, including while queued behind another caller; in that
        case no dispatch is recorded.
        """
        await self._enter(token)
        try:
            delay = self.remaining()
            if delay > 0:
                await cancellable_sleep(delay, token)
            if token is not None:
                token.raise_if_cancelled()
            self._last_dispatch = self._clock()
            return self._last_dispatch
        finally:
            self._lock.release()

    async def _enter(self, token: CancellationToken | None) -> None:
        if token is None:
            await self._lock.acquire()
            return
        token.raise_if_cancelled()
        entering = asyncio.ensure_future(self._lock.acquire())
        try:
            await token.guard(entering)
        except BaseException:
            # the lock may have been granted in the same loop iteration the token fired
            if not entering.done():
                entering.cancel()
            elif not entering.cancelled() and entering.exception() is None:
                self._lock.release()
            raise
