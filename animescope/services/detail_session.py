"""Load the full record of one catalog entry."""

from __future__ import annotations

import logging

from animescope.core.errors import (
    DETAIL_RATE_LIMIT_MESSAGE,
    ExternalAPIError,
    RequestCancelledError,
    user_message,
)
from animescope.ingestion.base import CatalogConnector
from animescope.schema.state import DetailState
from animescope.services.task_slots import TaskHandle, TaskSlots

logger = logging.getLogger("animescope.services.detail")

DETAIL_SLOT = "detail"
DEFAULT_ERROR = "Something went wrong while loading details."


class DetailSession:
    def __init__(self, connector: CatalogConnector) -> None:
        self.connector = connector
        self.state = DetailState()
        self._slots = TaskSlots("detail")

    @property
    def in_flight(self) -> bool:
        return DETAIL_SLOT in self._slots

    def load(self, mal_id: int) -> TaskHandle:
        self.state.loading = True
        self.state.error = None
        return self._slots.start(DETAIL_SLOT, lambda handle: self._run(handle, mal_id))

    async def _run(self, handle: TaskHandle, mal_id: int) -> None:
        try:
            detail = await self.connector.fetch(mal_id, token=handle.token)
        except RequestCancelledError:
            return
        except ExternalAPIError as exc:
            if not self._slots.is_current(handle):
                return
            logger.info("Detail %s failed: %s", mal_id, exc)
            self.state.loading = False
            self.state.error = user_message(
                exc, fallback=DEFAULT_ERROR, rate_limit_message=DETAIL_RATE_LIMIT_MESSAGE
            )
            return
        if not self._slots.is_current(handle):
            return
        self.state.loading = False
        self.state.current = detail

    def cancel(self) -> None:
        self._slots.cancel_all()

    def clear(self) -> None:
        self._slots.cancel_all("detail cleared")
        self.state = DetailState()
