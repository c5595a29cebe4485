"""Single-live-task-per-slot registry used to supersede stale requests."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, DefaultDict

from animescope.core.cancellation import CancellationToken
from animescope.core.errors import RequestCancelledError

logger = logging.getLogger("animescope.services.task_slots")


@dataclass(eq=False)
class TaskHandle:
    """An in-flight operation paired with its cancellation capability."""
    slot: str
    generation: int
    token: CancellationToken = field(default_factory=CancellationToken)
    task: asyncio.Task[Any] | None = None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()

    def cancel(self, reason: str = "superseded") -> None:
        """Cancel the operation; repeated calls and calls after completion do nothing."""
        self.token.cancel(reason)
        if self.task is not None and not self.task.done():
            self.task.cancel()

    async def result(self) -> Any:
        """Await the operation, translating task cancellation into ``RequestCancelledError``."""
        if self.task is None:
            raise RequestCancelledError("never started")
        try:
            return await asyncio.shield(self.task)
        except asyncio.CancelledError:
            if self.task.cancelled():
                raise RequestCancelledError(self.token.reason) from None
            raise


class TaskSlots:
    """Registry holding at most one live ``TaskHandle`` per named slot.

    Owners call ``is_current`` before applying a completion; a handle that has
    been superseded fails the check even if its task finished first.
    """

    def __init__(self, owner: str) -> None:
        self.owner = owner
        self._handles: dict[str, TaskHandle] = {}
        self._generations: DefaultDict[str, int] = defaultdict(int)

    def start(self, slot: str, operation: Callable[[TaskHandle], Awaitable[Any]]) -> TaskHandle:
        """Cancel whatever runs in ``slot`` and launch ``operation`` in its place."""
        self.cancel(slot)
        self._generations[slot] += 1
        handle = TaskHandle(slot=slot, generation=self._generations[slot])
        self._handles[slot] = handle
        handle.task = asyncio.create_task(
            self._run(handle, operation), name=f"{self.owner}:{slot}#{handle.generation}"
        )
        return handle

    async def _run(self, handle: TaskHandle, operation: Callable[[TaskHandle], Awaitable[Any]]) -> Any:
        try:
            return await operation(handle)
        finally:
            if self._handles.get(handle.slot) is handle:
                del self._handles[handle.slot]

    def is_current(self, handle: TaskHandle) -> bool:
        return not handle.cancelled and self._handles.get(handle.slot) is handle

    def get(self, slot: str) -> TaskHandle | None:
        return self._handles.get(slot)

    def cancel(self, slot: str, reason: str = "superseded") -> bool:
        handle = self._handles.pop(slot, None)
        if handle is None:
            return False
        handle.cancel(reason)
        logger.debug("Cancelled %s:%s#%s (%s)", self.owner, slot, handle.generation, reason)
        return True

    def cancel_all(self, reason: str = "teardown") -> None:
        for slot in list(self._handles):
            self.cancel(slot, reason)

    def active_slots(self) -> list[str]:
        return [slot for slot, handle in self._handles.items() if not handle.done]

    def __contains__(self, slot: str) -> bool:
        return slot in self._handles

    def __len__(self) -> int:
        return len(self._handles)
