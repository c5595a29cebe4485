"""Engine facade wiring input commands to the sessions that own each request slot.

Invariants:
- Each session mutates only its own state.
- ``navigate_away`` cancels every timer, request and scheduled retry the engine owns.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from animescope.core.clock import Clock, system_clock
from animescope.core.config import Settings, settings
from animescope.ingestion.base import CatalogConnector
from animescope.ingestion.jikan import JikanConnector
from animescope.schema.catalog import ResultItem
from animescope.schema.state import CollectionState, DetailState, SearchState, SuggestionState
from animescope.services.collection_loader import DEFAULT_COLLECTIONS, CollectionLoader, CollectionSpec
from animescope.services.debounce import QueryDebouncer
from animescope.services.detail_session import DetailSession
from animescope.services.search_session import SearchSession
from animescope.services.suggestion_session import SuggestionSession

logger = logging.getLogger("animescope.services.engine")


class SearchEngine:
    """Accept user commands and expose search, suggestion, collection and detail state."""

    def __init__(
        self,
        connector: CatalogConnector | None = None,
        *,
        clock: Clock | None = None,
        config: Settings | None = None,
        collections: tuple[CollectionSpec, ...] = DEFAULT_COLLECTIONS,
    ) -> None:
        self.config = config or settings
        self.clock = clock or system_clock
        self._owns_connector = connector is None
        self.connector = connector or JikanConnector(config=self.config, clock=self.clock)
        self.search = SearchSession(self.connector, clock=self.clock)
        self.suggestions = SuggestionSession(
            self.connector, clock=self.clock, config=self.config, on_select=self._commit_selection
        )
        self.collections = CollectionLoader(
            self.connector, specs=collections, clock=self.clock, config=self.config
        )
        self.details = DetailSession(self.connector)
        self.draft = ""
        self._debouncer = QueryDebouncer(
            self.config.search_debounce_seconds,
            self._commit_query,
            clock=self.clock,
            name="search-debounce",
        )
        self._debouncer.last_committed = self.search.state.query
        self._selection_listeners: list[Callable[[ResultItem], None]] = []

    async def __aenter__(self) -> SearchEngine:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @property
    def search_state(self) -> SearchState:
        return self.search.state

    @property
    def suggestion_state(self) -> SuggestionState:
        return self.suggestions.state

    @property
    def collection_states(self) -> dict[str, CollectionState]:
        return self.collections.states

    @property
    def detail_state(self) -> DetailState:
        return self.details.state

    @property
    def debouncing(self) -> bool:
        return self._debouncer.debouncing

    @property
    def pending_work(self) -> dict[str, bool]:
        """Report which timers and requests are still outstanding, keyed by owner."""
        return {
            "search_debounce": self._debouncer.pending,
            "search": self.search.in_flight,
            "suggestion_timer": self.suggestions.timer_pending,
            "suggestion_fetch": self.suggestions.fetch_in_flight,
            "collections": self.collections.active,
            "detail": self.details.in_flight,
        }

    def on_select(self, callback: Callable[[ResultItem], None]) -> None:
        """Subscribe to committed suggestion selections (the navigation target)."""
        self._selection_listeners.append(callback)

    def on_anchor_refresh(self, callback: Callable[[str], None]) -> None:
        self.suggestions.on_anchor_refresh(callback)

    def activate(self) -> None:
        """Start loading the curated collections."""
        self.collections.start()

    def set_draft(self, text: str) -> None:
        self.draft = text
        self._debouncer.push(text)
        self.suggestions.on_draft(text)

    def _commit_query(self, query: str) -> None:
        logger.debug("Committing query %r", query)
        self.search.set_query(query)

    def clear_query(self) -> None:
        self.draft = ""
        self._debouncer.mark_committed("")
        self.suggestions.close()
        self.search.set_query("")

    def set_page(self, page: int) -> None:
        self.search.set_page(page)

    def next_page(self) -> None:
        self.search.next_page()

    def previous_page(self) -> None:
        self.search.previous_page()

    def clear_error(self) -> None:
        self.search.clear_error()

    def handle_key(self, key: str) -> bool:
        return self.suggestions.handle_key(key)

    def dismiss_suggestions(self) -> None:
        self.suggestions.close()

    def request_anchor_refresh(self, reason: str) -> None:
        self.suggestions.request_anchor_refresh(reason)

    def select_suggestion(self, item: ResultItem) -> ResultItem:
        """Commit ``item`` as the new query and return it as the navigation target."""
        self.suggestions.select(item)
        return item

    def _commit_selection(self, item: ResultItem) -> None:
        query = (item.display_title or self.draft).strip()
        self.draft = query
        self._debouncer.mark_committed(query)
        self.search.set_query(query)
        for listener in list(self._selection_listeners):
            listener(item)

    def show_detail(self, mal_id: int) -> None:
        self.details.load(mal_id)

    def navigate_away(self) -> None:
        """Tear down every slot, timer and scheduled retry."""
        self._debouncer.cancel()
        self.suggestions.teardown()
        self.search.cancel()
        self.collections.cancel()
        self.details.cancel()
        logger.debug("Engine torn down")

    def diagnostics(self) -> dict[str, Any]:
        monitor = getattr(self.connector, "monitor", None)
        return {
            "pending": self.pending_work,
            "requests": monitor.snapshot() if monitor is not None else {},
        }

    async def aclose(self) -> None:
        self.navigate_away()
        if self._owns_connector:
            await self.connector.aclose()
