"""Base connector interface for catalog sources."""

from __future__ import annotations

from typing import Any

from animescope.core.cancellation import CancellationToken
from animescope.schema.catalog import AnimeDetail, ResultItem, SearchPage


class CatalogConnector:
    """Abstract catalog interface consumed by the engine sessions.

    Every method accepts the cancellation token of the slot it runs in and must
    raise ``RequestCancelledError`` once the token is observed as cancelled.
    """
    source_name: str

    async def search(self, query: str, page: int, *, token: CancellationToken) -> SearchPage:
        """Return one page of results for a free-text query."""
        raise NotImplementedError

    async def suggest(
        self, query: str, *, limit: int | None = None, token: CancellationToken
    ) -> list[ResultItem]:
        """Return a short, popularity-ordered list of entries matching ``query``."""
        raise NotImplementedError

    async def collection(
        self, path: str, params: dict[str, Any], *, token: CancellationToken
    ) -> list[ResultItem]:
        """Return the entries of a curated list endpoint."""
        raise NotImplementedError

    async def fetch(self, identifier: int, *, token: CancellationToken) -> AnimeDetail:
        """Fetch the full record for one entry."""
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
