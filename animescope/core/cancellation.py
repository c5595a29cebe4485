"""Cooperative cancellation tokens passed through every suspension point."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from animescope.core.errors import RequestCancelledError

Sleeper = Callable[[float], Awaitable[None]]


class CancellationToken:
    """Flag observed by long-running work before and during each wait.

    Cancelling is idempotent. Work that observes the flag raises
    ``RequestCancelledError`` and stops retrying or waiting.
    """

    def __init__(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        if reason:
            self.reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelledError(self.reason)

    async def sleep(self, seconds: float, sleeper: Sleeper) -> None:
        """Wait ``seconds`` on ``sleeper`` unless the token is cancelled first."""
        self.raise_if_cancelled()
        waiter = asyncio.ensure_future(sleeper(seconds))
        watcher = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({waiter, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for pending in (waiter, watcher):
                if not pending.done():
                    pending.cancel()
        self.raise_if_cancelled()
        # Surface errors raised by the sleeper itself.
        waiter.result()
