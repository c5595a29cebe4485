"""State shapes exposed by the engine to its consumers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime

from animescope.schema.catalog import AnimeDetail, ResultItem


class RequestStatus(str, enum.Enum):
    """Lifecycle of the search and suggestion slots."""
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


class CollectionStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SuggestionPhase(str, enum.Enum):
    """Observable phase of the suggestion overlay."""
    CLOSED = "closed"
    LOADING = "loading"
    OPEN_WITH_RESULTS = "open_with_results"
    OPEN_EMPTY = "open_empty"
    OPEN_ERROR = "open_error"


@dataclass
class SearchState:
    """Authoritative search state; ``page`` only has meaning relative to ``query``."""
    query: str = ""
    page: int = 1
    status: RequestStatus = RequestStatus.IDLE
    error: str | None = None
    results: list[ResultItem] = field(default_factory=list)
    total_pages: int = 1
    last_updated: datetime | None = None


@dataclass
class SuggestionState:
    """Live suggestion overlay; ``highlighted_index`` is -1 or a valid index into ``items``."""
    items: list[ResultItem] = field(default_factory=list)
    status: RequestStatus = RequestStatus.IDLE
    error: str | None = None
    open: bool = False
    highlighted_index: int = -1

    @property
    def highlighted(self) -> ResultItem | None:
        if 0 <= self.highlighted_index < len(self.items):
            return self.items[self.highlighted_index]
        return None

    @property
    def phase(self) -> SuggestionPhase:
        if self.status == RequestStatus.LOADING:
            return SuggestionPhase.LOADING
        if not self.open:
            return SuggestionPhase.CLOSED
        if self.status == RequestStatus.ERROR:
            return SuggestionPhase.OPEN_ERROR
        if self.items:
            return SuggestionPhase.OPEN_WITH_RESULTS
        return SuggestionPhase.OPEN_EMPTY


@dataclass
class CollectionState:
    items: list[ResultItem] = field(default_factory=list)
    status: CollectionStatus = CollectionStatus.IDLE
    error: str | None = None


@dataclass
class DetailState:
    current: AnimeDetail | None = None
    loading: bool = False
    error: str | None = None
