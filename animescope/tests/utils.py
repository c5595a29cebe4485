"""Shared helpers for engine tests: a manual clock and a scripted catalog transport."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx

from animescope.core.config import Settings
from animescope.ingestion.jikan import JikanConnector
from animescope.ingestion.observability import RequestMonitor

BASE_URL = "https://api.jikan.test/v4"
EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


async def settle(rounds: int = 50) -> None:
    """Let every runnable task advance until it blocks on I/O or a timer."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClock:
    """Deterministic clock whose sleeps only finish when the test advances time."""

    def __init__(self) -> None:
        self.time = 0.0
        self.sleeps: list[float] = []
        self._seq = itertools.count()
        self._waiters: list[tuple[float, int, asyncio.Future[None]]] = []

    def now(self) -> datetime:
        return EPOCH + timedelta(seconds=self.time)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._waiters, (self.time + seconds, next(self._seq), future))
        await future

    @property
    def pending(self) -> int:
        return sum(1 for _, _, future in self._waiters if not future.done())

    async def advance(self, seconds: float) -> None:
        target = self.time + seconds
        await settle()
        while self._waiters and self._waiters[0][0] <= target:
            deadline, _, future = heapq.heappop(self._waiters)
            if future.done():
                continue
            self.time = deadline
            future.set_result(None)
            await settle()
        self.time = target
        await settle()


class Gate:
    """Response that is held back until the test releases it."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self._event = asyncio.Event()

    def release(self) -> None:
        self._event.set()

    async def wait(self) -> httpx.Response:
        await self._event.wait()
        return self.response


Scripted = httpx.Response | Gate | Exception


@dataclass
class Route:
    path: str
    when: Callable[[httpx.Request], bool] | None
    responses: deque[Scripted] = field(default_factory=deque)
    repeat: httpx.Response | None = None

    def matches(self, request: httpx.Request) -> bool:
        return self._path(request) == self.path and (self.when is None or self.when(request))

    @staticmethod
    def _path(request: httpx.Request) -> str:
        return request.url.path.removeprefix("/v4")


class CatalogStub:
    """Scripted Jikan API served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: list[Route] = []
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    def route(
        self,
        path: str,
        *responses: Scripted,
        when: Callable[[httpx.Request], bool] | None = None,
        repeat: httpx.Response | None = None,
    ) -> Route:
        route = Route(path=path, when=when, responses=deque(responses), repeat=repeat)
        self._routes.append(route)
        return route

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for route in self._routes:
            if not route.matches(request):
                continue
            if route.responses:
                item = route.responses.popleft()
            elif route.repeat is not None:
                item = route.repeat
            else:
                continue
            if isinstance(item, Gate):
                return await item.wait()
            if isinstance(item, Exception):
                raise item
            return item
        raise AssertionError(f"No stub response configured for {request.url}")

    def calls(self, path: str, when: Callable[[httpx.Request], bool] | None = None) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if Route._path(request) == path and (when is None or when(request))
        ]


def is_suggestion(request: httpx.Request) -> bool:
    return request.url.params.get("order_by") == "popularity"


def is_search(request: httpx.Request) -> bool:
    return "order_by" not in request.url.params


def json_response(payload: dict[str, Any], status: int = 200) -> httpx.Response:
    return httpx.Response(status_code=status, json=payload)


def status_response(status: int, message: str | None = None) -> httpx.Response:
    body: dict[str, Any] = {"status": status}
    if message:
        body["message"] = message
    return httpx.Response(status_code=status, json=body)


def entry(mal_id: int, title: str | None = None) -> dict[str, Any]:
    return {
        "mal_id": mal_id,
        "url": f"https://myanimelist.net/anime/{mal_id}",
        "title": title or f"Anime {mal_id}",
        "title_english": None,
        "title_japanese": None,
        "titles": [],
        "images": {"jpg": {"image_url": None, "small_image_url": None, "large_image_url": None}},
    }


def page_payload(titles: list[str], *, last_page: int = 1, start_id: int = 1) -> dict[str, Any]:
    return {
        "pagination": {"last_visible_page": last_page, "has_next_page": last_page > 1},
        "data": [entry(start_id + index, title) for index, title in enumerate(titles)],
    }


def list_payload(count: int, *, start_id: int = 1) -> dict[str, Any]:
    return {"data": [entry(start_id + index) for index in range(count)]}


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "jikan_base_url": BASE_URL,
        "retry_delay_seconds": 1.0,
        "search_max_retries": 0,
        "suggestion_max_retries": 0,
        "collection_max_retries": 0,
    }
    values.update(overrides)
    return Settings(**values)


def make_connector(stub: CatalogStub, clock: FakeClock, **overrides: Any) -> JikanConnector:
    return JikanConnector(
        stub.client,
        config=make_settings(**overrides),
        clock=clock,
        monitor=RequestMonitor(),
    )
