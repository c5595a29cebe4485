"""Live suggestion overlay: its debounce, fetch lifecycle and keyboard navigation."""

from __future__ import annotations

import logging
from typing import Callable

from animescope.core.clock import Clock, system_clock
from animescope.core.config import Settings, settings
from animescope.core.errors import ExternalAPIError, RequestCancelledError, user_message
from animescope.ingestion.base import CatalogConnector
from animescope.schema.catalog import ResultItem
from animescope.schema.state import RequestStatus, SuggestionPhase, SuggestionState
from animescope.services.debounce import QueryDebouncer
from animescope.services.task_slots import TaskHandle, TaskSlots

logger = logging.getLogger("animescope.services.suggestions")

FETCH_SLOT = "suggestions"
DEFAULT_ERROR = "Unable to load suggestions right now."

ARROW_DOWN = "ArrowDown"
ARROW_UP = "ArrowUp"
ENTER = "Enter"
ESCAPE = "Escape"


class SuggestionSession:
    """Own the suggestion state for one input and every request issued for it.

    Invariants:
    - ``highlighted_index`` stays -1 or a valid index into ``items``.
    - Closing discards the pending timer, the in-flight fetch and the items.
    """

    def __init__(
        self,
        connector: CatalogConnector,
        *,
        clock: Clock | None = None,
        config: Settings | None = None,
        on_select: Callable[[ResultItem], None] | None = None,
    ) -> None:
        self.connector = connector
        self.clock = clock or system_clock
        self.config = config or settings
        self.threshold = self.config.suggestion_threshold
        self.state = SuggestionState()
        self.draft = ""
        self._on_select = on_select
        self._anchor_listeners: list[Callable[[str], None]] = []
        self._slots = TaskSlots("suggestions")
        self._debouncer = QueryDebouncer(
            self.config.suggestion_debounce_seconds,
            self._open_and_fetch,
            clock=self.clock,
            dedupe=False,
            name="suggestion-debounce",
        )

    @property
    def phase(self) -> SuggestionPhase:
        return self.state.phase

    @property
    def fetch_in_flight(self) -> bool:
        return FETCH_SLOT in self._slots

    @property
    def timer_pending(self) -> bool:
        return self._debouncer.pending

    def on_select(self, callback: Callable[[ResultItem], None]) -> None:
        self._on_select = callback

    def on_anchor_refresh(self, callback: Callable[[str], None]) -> None:
        """Subscribe to requests for the presentation layer to re-measure the input."""
        self._anchor_listeners.append(callback)

    def request_anchor_refresh(self, reason: str) -> None:
        if reason != "open" and not self.state.open:
            return
        for listener in list(self._anchor_listeners):
            listener(reason)

    def on_draft(self, draft: str) -> None:
        """React to an edit of the draft query.

        Edits that leave the trimmed query unchanged keep the pending timer,
        the in-flight fetch and the open overlay as they are.
        """
        previous = self.draft.strip()
        self.draft = draft
        if draft.strip() == previous and (self.timer_pending or self.fetch_in_flight or self.state.open):
            return
        self._debouncer.cancel()
        self._slots.cancel(FETCH_SLOT)
        if len(draft.strip()) < self.threshold:
            self.close()
            return
        self._debouncer.push(draft)

    def _open_and_fetch(self, query: str) -> None:
        self.state.open = True
        self.state.highlighted_index = -1
        self.request_anchor_refresh("open")
        self._start_fetch(query)

    def _start_fetch(self, query: str) -> None:
        self.state.status = RequestStatus.LOADING
        self.state.error = None
        self._slots.start(FETCH_SLOT, lambda handle: self._fetch(handle, query))

    async def _fetch(self, handle: TaskHandle, query: str) -> None:
        try:
            items = await self.connector.suggest(query, token=handle.token)
        except RequestCancelledError:
            return
        except ExternalAPIError as exc:
            if not self._slots.is_current(handle):
                return
            logger.info("Suggestions for %r failed: %s", query, exc)
            self.state.status = RequestStatus.ERROR
            self.state.error = user_message(exc, fallback=DEFAULT_ERROR)
            self._set_items([])
            return
        if not self._slots.is_current(handle):
            return
        self.state.status = RequestStatus.IDLE
        self._set_items(items)

    def _set_items(self, items: list[ResultItem]) -> None:
        self.state.items = list(items)
        self._normalize_highlight()

    def _normalize_highlight(self) -> None:
        count = len(self.state.items)
        if count == 0:
            self.state.highlighted_index = -1
        elif self.state.open and not 0 <= self.state.highlighted_index < count:
            self.state.highlighted_index = 0

    def close(self) -> None:
        """Dismiss the overlay and drop everything it was waiting on."""
        self._debouncer.cancel()
        self._slots.cancel(FETCH_SLOT, "suggestions closed")
        self.state.open = False
        self.state.items = []
        self.state.highlighted_index = -1
        self.state.status = RequestStatus.IDLE
        self.state.error = None

    def handle_key(self, key: str) -> bool:
        """Apply a navigation key; return True when the key was consumed."""
        if key == ARROW_DOWN:
            if not self.state.open:
                return self._reopen()
            self._move_highlight(1)
            return True
        if key == ARROW_UP:
            if not self.state.open:
                return False
            self._move_highlight(-1)
            return True
        if key == ENTER:
            item = self.state.highlighted if self.state.open else None
            if item is None:
                return False
            self.select(item)
            return True
        if key == ESCAPE:
            if not self.state.open:
                return False
            self.close()
            return True
        return False

    def _reopen(self) -> bool:
        query = self.draft.strip()
        if len(query) < self.threshold:
            return False
        self._debouncer.cancel()
        self.state.open = True
        self.state.highlighted_index = 0 if self.state.items else -1
        self.request_anchor_refresh("open")
        if not self.state.items and not self.fetch_in_flight:
            self._start_fetch(query)
        return True

    def _move_highlight(self, step: int) -> None:
        count = len(self.state.items)
        if count == 0:
            self.state.highlighted_index = -1
            return
        current = self.state.highlighted_index
        if current < 0:
            self.state.highlighted_index = 0 if step > 0 else count - 1
            return
        self.state.highlighted_index = (current + step) % count

    def select(self, item: ResultItem) -> None:
        """Commit ``item`` and close the overlay."""
        self.close()
        if self._on_select is not None:
            self._on_select(item)

    def teardown(self) -> None:
        self.close()
        self._slots.cancel_all()
