from __future__ import annotations

from typing import Any, Callable, TypeVar

import httpx
from pydantic import ValidationError

from animescope.core.cancellation import CancellationToken
from animescope.core.clock import Clock, system_clock
from animescope.core.config import Settings, settings
from animescope.core.errors import GenericRequestError
from animescope.ingestion.base import CatalogConnector
from animescope.ingestion.http import MALFORMED_RESPONSE_MESSAGE, RetryPolicy, fetch_json
from animescope.ingestion.observability import RequestMonitor
from animescope.schema.catalog import AnimeDetail, ResultItem, SearchPage, parse_entries

ANIME_PATH = "/anime"
TOP_ANIME_PATH = "/top/anime"
SEASON_NOW_PATH = "/seasons/now"

T = TypeVar("T")

request_monitor = RequestMonitor()


class JikanConnector(CatalogConnector):
    source_name = "jikan"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        config: Settings | None = None,
        clock: Clock | None = None,
        monitor: RequestMonitor | None = None,
    ) -> None:
        self.config = config or settings
        self.base_url = self.config.jikan_base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.config.request_timeout_seconds,
            headers={"accept": "application/json"},
        )
        self.clock = clock or system_clock
        self.monitor = monitor or request_monitor
        statuses = frozenset(self.config.retry_statuses)
        delay = self.config.retry_delay_seconds
        self.search_policy = RetryPolicy(self.config.search_max_retries, delay, statuses)
        self.suggestion_policy = RetryPolicy(self.config.suggestion_max_retries, delay, statuses)
        self.collection_policy = RetryPolicy(self.config.collection_max_retries, delay, statuses)
        # Detail pages are fetched once; failures surface immediately.
        self.detail_policy = RetryPolicy(0, delay, statuses)

    def _sfw(self) -> dict[str, str]:
        return {"sfw": "true"} if self.config.safe_content else {}

    async def _get(
        self,
        operation: str,
        path: str,
        params: dict[str, Any],
        policy: RetryPolicy,
        token: CancellationToken,
        context: dict[str, Any],
        parse: Callable[[dict[str, Any]], T],
        label: str = "Request",
    ) -> T:
        token.raise_if_cancelled()

        async def _call() -> T:
            payload = await fetch_json(
                self.client,
                f"{self.base_url}{path}",
                params=params,
                policy=policy,
                token=token,
                sleep=self.clock.sleep,
                label=label,
            )
            try:
                return parse(payload)
            except (ValidationError, TypeError) as exc:
                raise GenericRequestError(MALFORMED_RESPONSE_MESSAGE) from exc

        return await self.monitor.track(operation, _call, context=context)

    async def search(self, query: str, page: int, *, token: CancellationToken) -> SearchPage:
        params = {
            "q": query,
            "page": str(page),
            "limit": str(self.config.search_page_size),
            **self._sfw(),
        }
        return await self._get(
            "search",
            ANIME_PATH,
            params,
            self.search_policy,
            token,
            {"query": query, "page": page},
            SearchPage.from_payload,
        )

    async def suggest(
        self, query: str, *, limit: int | None = None, token: CancellationToken
    ) -> list[ResultItem]:
        params = {
            "q": query,
            "limit": str(limit or self.config.suggestion_limit),
            "order_by": "popularity",
            "sort": "asc",
            **self._sfw(),
        }
        return await self._get(
            "suggest",
            ANIME_PATH,
            params,
            self.suggestion_policy,
            token,
            {"query": query},
            parse_entries,
            label="Suggestion request",
        )

    async def collection(
        self, path: str, params: dict[str, Any], *, token: CancellationToken
    ) -> list[ResultItem]:
        return await self._get(
            "collection", path, dict(params), self.collection_policy, token, {"path": path}, parse_entries
        )

    async def fetch(self, identifier: int, *, token: CancellationToken) -> AnimeDetail:
        return await self._get(
            "detail",
            f"{ANIME_PATH}/{identifier}/full",
            {},
            self.detail_policy,
            token,
            {"mal_id": identifier},
            AnimeDetail.from_payload,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
