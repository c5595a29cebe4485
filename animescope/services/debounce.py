"""
Debounced query commits.

Draft updates re-arm a single timer; only a draft that survives the quiet
interval untouched is committed.
"""

from __future__ import annotations

import logging
from typing import Callable

from animescope.core.clock import Clock, system_clock
from animescope.services.task_slots import TaskHandle, TaskSlots

logger = logging.getLogger("animescope.services.debounce")

_TIMER_SLOT = "commit"


class QueryDebouncer:
    """
    Turn a rapid stream of draft queries into a throttled stream of commits.

    ``debouncing`` is True from the moment a draft arrives until it is
    committed, dropped as a duplicate, or cancelled.
    """

    def __init__(
        self,
        delay: float,
        on_commit: Callable[[str], None],
        *,
        clock: Clock | None = None,
        dedupe: bool = True,
        name: str = "debounce",
    ) -> None:
        """
        Args:
            delay: Quiet interval in seconds before a draft is committed
            on_commit: Called with the trimmed draft when the timer expires
            clock: Source of the timer sleep
            dedupe: Drop commits equal to the last committed value
            name: Label used for task names and logs
        """
        self.delay = delay
        self.on_commit = on_commit
        self.clock = clock or system_clock
        self.dedupe = dedupe
        self.last_committed: str | None = None
        self.debouncing = False
        self._slots = TaskSlots(name)

    @property
    def pending(self) -> bool:
        return _TIMER_SLOT in self._slots

    def push(self, draft: str) -> None:
        """Cancel the pending commit and arm a new timer for ``draft``."""
        self.debouncing = True
        self._slots.start(_TIMER_SLOT, lambda handle: self._delayed_commit(handle, draft))

    async def _delayed_commit(self, handle: TaskHandle, draft: str) -> None:
        await handle.token.sleep(self.delay, self.clock.sleep)
        if not self._slots.is_current(handle):
            return
        self.debouncing = False
        value = draft.strip()
        if self.dedupe and value == self.last_committed:
            logger.debug("Skipping duplicate commit %r", value)
            return
        self.last_committed = value
        self.on_commit(value)

    def mark_committed(self, value: str) -> None:
        """Record a value committed outside the timer so a stale draft cannot re-commit."""
        self.cancel()
        self.last_committed = value.strip()

    def cancel(self) -> None:
        self._slots.cancel(_TIMER_SLOT, "debounce cancelled")
        self.debouncing = False
