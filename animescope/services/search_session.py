"""Primary search state: committed query, pagination and result reconciliation."""

from __future__ import annotations

import logging

from animescope.core.clock import Clock, system_clock
from animescope.core.errors import ExternalAPIError, RequestCancelledError, user_message
from animescope.ingestion.base import CatalogConnector
from animescope.schema.state import RequestStatus, SearchState
from animescope.services.task_slots import TaskHandle, TaskSlots

logger = logging.getLogger("animescope.services.search")

SEARCH_SLOT = "search"
DEFAULT_ERROR = "Something went wrong while searching."


class SearchSession:
    """Issue the primary search and fold its completions into ``state``.

    Invariants:
    - Changing the query resets ``page`` to 1 before a request is issued.
    - Only the completion of the current slot handle mutates state; superseded
      completions and cancellations are dropped silently.
    """

    def __init__(self, connector: CatalogConnector, *, clock: Clock | None = None) -> None:
        self.connector = connector
        self.clock = clock or system_clock
        self.state = SearchState()
        self._slots = TaskSlots("search")

    @property
    def in_flight(self) -> bool:
        return SEARCH_SLOT in self._slots

    def set_query(self, query: str) -> TaskHandle:
        """Commit a new query and search its first page."""
        self.state.query = query.strip()
        self.state.page = 1
        return self._execute(self.state.query, 1)

    def set_page(self, page: int) -> TaskHandle | None:
        if page < 1:
            raise ValueError("page must be >= 1")
        if page == self.state.page:
            return None
        self.state.page = page
        return self._execute(self.state.query, page)

    def next_page(self) -> TaskHandle | None:
        if self.state.page >= self.state.total_pages:
            return None
        return self.set_page(self.state.page + 1)

    def previous_page(self) -> TaskHandle | None:
        if self.state.page <= 1:
            return None
        return self.set_page(self.state.page - 1)

    def clear_error(self) -> None:
        self.state.error = None
        self.state.status = RequestStatus.IDLE

    def reset(self) -> None:
        self._slots.cancel(SEARCH_SLOT, "reset")
        self.state = SearchState()

    def cancel(self) -> None:
        self._slots.cancel_all()

    def _execute(self, query: str, page: int) -> TaskHandle:
        self.state.status = RequestStatus.LOADING
        self.state.error = None
        return self._slots.start(SEARCH_SLOT, lambda handle: self._run(handle, query, page))

    async def _run(self, handle: TaskHandle, query: str, page: int) -> None:
        try:
            result = await self.connector.search(query, page, token=handle.token)
        except RequestCancelledError:
            return
        except ExternalAPIError as exc:
            if not self._slots.is_current(handle):
                return
            logger.info("Search for %r page %s failed: %s", query, page, exc)
            self.state.status = RequestStatus.ERROR
            self.state.error = user_message(exc, fallback=DEFAULT_ERROR)
            return
        if not self._slots.is_current(handle):
            logger.debug("Discarding stale search completion for %r page %s", query, page)
            return
        self.state.status = RequestStatus.IDLE
        self.state.results = result.items
        self.state.total_pages = max(result.last_visible_page, 1)
        self.state.page = page
        self.state.last_updated = self.clock.now()
