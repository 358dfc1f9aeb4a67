"""Cooperative cancellation shared by one search-and-import operation."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from comic_notes.errors import Cancelled

T = TypeVar("T")


class CancellationToken:
    """
    A one-shot cancellation signal.

    Every suspension point of an import (rate-limit spacing, network
    round-trips) waits on the token as well, so `cancel()` unwinds the
    operation at the next await with a `Cancelled` error.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled(self.reason or "Request aborted")

    async def sleep(self, delay: float) -> None:
        """Sleep for `delay` seconds unless cancelled first."""
        self.raise_if_cancelled()
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable`, abandoning it as soon as the token fires."""
        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
        if self.cancelled:
            if not task.cancelled() and task.done():
                # retrieve so the loop does not warn about an unobserved exception
                task.exception()
            raise Cancelled(self.reason or "Request aborted")
        return task.result()


async def cancellable_sleep(delay: float, token: CancellationToken | None) -> None:
    if token is None:
        if delay > 0:
            await asyncio.sleep(delay)
        return
    await token.sleep(delay)
