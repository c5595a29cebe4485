"""Staggered loading of the curated collections shown before any search."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from animescope.core.clock import Clock, system_clock
from animescope.core.config import Settings, settings
from animescope.core.errors import (
    COLLECTION_RATE_LIMIT_MESSAGE,
    ExternalAPIError,
    RateLimitError,
    RequestCancelledError,
    user_message,
)
from animescope.ingestion.base import CatalogConnector
from animescope.ingestion.jikan import SEASON_NOW_PATH, TOP_ANIME_PATH
from animescope.schema.state import CollectionState, CollectionStatus
from animescope.services.task_slots import TaskHandle, TaskSlots

logger = logging.getLogger("animescope.services.collections")

SEQUENCE_SLOT = "sequence"
DEFAULT_ERROR = "Failed to load data."


@dataclass(frozen=True)
class CollectionSpec:
    """A named curated list and the item limit applied to its response."""
    name: str
    path: str
    limit: int
    params: dict[str, Any] = field(default_factory=dict)

    def request_params(self) -> dict[str, Any]:
        return {"limit": str(self.limit), **self.params}


DEFAULT_COLLECTIONS: tuple[CollectionSpec, ...] = (
    CollectionSpec(name="trending", path=TOP_ANIME_PATH, limit=20),
    CollectionSpec(name="seasonal", path=SEASON_NOW_PATH, limit=12),
    CollectionSpec(
        name="top_rated",
        path=TOP_ANIME_PATH,
        limit=12,
        params={"order_by": "score", "sort": "desc"},
    ),
)


class CollectionLoader:
    """Load each collection in turn, pausing between them to spare the rate limiter.

    Implementation notes:
    - The sequence runs in one slot; each rate-limit retry gets a slot named
      after its collection, so teardown reaches both.
    - A collection retries at most once after a rate-limit failure, on top of
      whatever the fetch layer already retried.
    """

    def __init__(
        self,
        connector: CatalogConnector,
        *,
        specs: tuple[CollectionSpec, ...] = DEFAULT_COLLECTIONS,
        clock: Clock | None = None,
        config: Settings | None = None,
    ) -> None:
        self.connector = connector
        self.specs = specs
        self.clock = clock or system_clock
        self.config = config or settings
        self.stagger = self.config.collection_stagger_seconds
        self.retry_delay = self.config.collection_rate_limit_retry_seconds
        self.states: dict[str, CollectionState] = {spec.name: CollectionState() for spec in specs}
        self._slots = TaskSlots("collections")

    def __getitem__(self, name: str) -> CollectionState:
        return self.states[name]

    @property
    def active(self) -> bool:
        return len(self._slots) > 0

    def start(self) -> TaskHandle:
        """Cancel any earlier run and begin loading every collection."""
        self.cancel()
        return self._slots.start(SEQUENCE_SLOT, self._run_sequence)

    async def _run_sequence(self, handle: TaskHandle) -> None:
        try:
            for index, spec in enumerate(self.specs):
                if index:
                    await handle.token.sleep(self.stagger, self.clock.sleep)
                await self._load(spec, handle, retried=False)
        except RequestCancelledError:
            return

    async def _load(self, spec: CollectionSpec, handle: TaskHandle, *, retried: bool) -> None:
        handle.token.raise_if_cancelled()
        self.states[spec.name] = CollectionState(status=CollectionStatus.LOADING)
        try:
            items = await self.connector.collection(spec.path, spec.request_params(), token=handle.token)
        except RequestCancelledError:
            raise
        except ExternalAPIError as exc:
            if handle.cancelled:
                return
            message = user_message(
                exc, fallback=DEFAULT_ERROR, rate_limit_message=COLLECTION_RATE_LIMIT_MESSAGE
            )
            self.states[spec.name] = CollectionState(status=CollectionStatus.FAILED, error=message)
            if isinstance(exc, RateLimitError) and not retried:
                logger.info("Collection %s rate limited; retrying in %ss", spec.name, self.retry_delay)
                self._slots.start(spec.name, lambda retry: self._retry_later(spec, retry))
            else:
                logger.warning("Collection %s failed: %s", spec.name, exc)
            return
        if handle.cancelled:
            return
        self.states[spec.name] = CollectionState(
            items=items[: spec.limit], status=CollectionStatus.SUCCEEDED
        )

    async def _retry_later(self, spec: CollectionSpec, handle: TaskHandle) -> None:
        try:
            await handle.token.sleep(self.retry_delay, self.clock.sleep)
            await self._load(spec, handle, retried=True)
        except RequestCancelledError:
            return

    def cancel(self) -> None:
        """Abort outstanding requests and scheduled retries."""
        self._slots.cancel_all()
