"""End-to-end flows through the engine facade."""

from __future__ import annotations

import copy

import pytest

from animescope.ingestion.jikan import JikanConnector
from animescope.schema.catalog import ResultItem
from animescope.schema.state import RequestStatus, SuggestionPhase
from animescope.services.engine import SearchEngine
from animescope.services.suggestion_session import ENTER
from animescope.tests.utils import (
    CatalogStub,
    FakeClock,
    Gate,
    is_search,
    is_suggestion,
    json_response,
    list_payload,
    make_settings,
    page_payload,
    settle,
)

TITLES = ["Naruto", "Naruto Shippuden", "Boruto"]


def _engine(connector: JikanConnector, clock: FakeClock) -> SearchEngine:
    return SearchEngine(connector, clock=clock, config=connector.config)


def _route_catalog(stub: CatalogStub) -> None:
    stub.route("/anime", repeat=json_response(page_payload(TITLES)), when=is_suggestion)
    stub.route("/anime", repeat=json_response(page_payload(TITLES, last_page=2)), when=is_search)


@pytest.mark.asyncio
async def test_draft_drives_search_and_suggestions(
    stub: CatalogStub, connector: JikanConnector, clock: FakeClock
) -> None:
    _route_catalog(stub)
    engine = _engine(connector, clock)

    for draft in ("n", "na", "nar", "naruto"):
        engine.set_draft(draft)
        await clock.advance(0.05)
    assert engine.debouncing
    await clock.advance(0.25)

    searches = stub.calls("/anime", is_search)
    suggestions = stub.calls("/anime", is_suggestion)
    assert [request.url.params["q"] for request in searches] == ["naruto"]
    assert [request.url.params["q"] for request in suggestions] == ["naruto"]
    assert not engine.debouncing
    assert engine.search_state.query == "naruto"
    assert engine.search_state.total_pages == 2
    assert engine.suggestion_state.phase == SuggestionPhase.OPEN_WITH_RESULTS
    assert not any(engine.pending_work.values())


@pytest.mark.asyncio
async def test_selecting_suggestion_commits_its_title(
    stub: CatalogStub, connector: JikanConnector, clock: FakeClock
) -> None:
    _route_catalog(stub)
    engine = _engine(connector, clock)
    selected: list[ResultItem] = []
    engine.on_select(selected.append)

    engine.set_draft("naruto")
    await clock.advance(0.25)
    choice = engine.suggestion_state.items[1]

    engine.set_draft("naruto s")
    await clock.advance(0.1)
    target = engine.select_suggestion(choice)
    await clock.advance(1)

    assert target == choice
    assert selected == [choice]
    assert engine.draft == "Naruto Shippuden"
    assert engine.search_state.query == "Naruto Shippuden"
    assert engine.suggestion_state.phase == SuggestionPhase.CLOSED
    searches = [request.url.params["q"] for request in stub.calls("/anime", is_search)]
    assert searches == ["naruto", "Naruto Shippuden"]
    assert len(stub.calls("/anime", is_suggestion)) == 1


@pytest.mark.asyncio
async def test_enter_selects_highlighted_suggestion(
    stub: CatalogStub, connector: JikanConnector, clock: FakeClock
) -> None:
    _route_catalog(stub)
    engine = _engine(connector, clock)
    engine.set_draft("naru")
    await clock.advance(0.25)

    assert engine.handle_key(ENTER)
    await settle()

    assert engine.search_state.query == "Naruto"
    assert engine.search_state.status == RequestStatus.IDLE


@pytest.mark.asyncio
async def test_clear_query_searches_empty_query(
    stub: CatalogStub, connector: JikanConnector, clock: FakeClock
) -> None:
    _route_catalog(stub)
    engine = _engine(connector, clock)
    engine.set_draft("naruto")
    await clock.advance(0.25)

    engine.clear_query()
    await clock.advance(1)

    assert engine.draft == ""
    assert engine.search_state.query == ""
    assert engine.suggestion_state.phase == SuggestionPhase.CLOSED
    searches = [request.url.params["q"] for request in stub.calls("/anime", is_search)]
    assert searches == ["naruto", ""]


@pytest.mark.asyncio
async def test_pagination_commands_delegate_to_search(
    stub: CatalogStub, connector: JikanConnector, clock: FakeClock
) -> None:
    _route_catalog(stub)
    engine = _engine(connector, clock)
    engine.set_draft("naruto")
    await clock.advance(0.25)

    engine.next_page()
    await settle()
    assert engine.search_state.page == 2
    engine.next_page()
    engine.previous_page()
    await settle()

    pages = [request.url.params["page"] for request in stub.calls("/anime", is_search)]
    assert pages == ["1", "2", "1"]


@pytest.mark.asyncio
async def test_navigate_away_cancels_all_outstanding_work(
    stub: CatalogStub, connector: JikanConnector, clock: FakeClock
) -> None:
    gates = [Gate(json_response(list_payload(3))) for _ in range(4)]
    stub.route("/top/anime", gates[0])
    stub.route("/anime", gates[1], when=is_search)
    stub.route("/anime", gates[2], when=is_suggestion)
    stub.route("/anime/1/full", gates[3])
    engine = _engine(connector, clock)

    engine.activate()
    engine.show_detail(1)
    engine.set_draft("bebop")
    await clock.advance(0.25)
    pending = engine.pending_work
    assert pending["collections"] and pending["search"] and pending["suggestion_fetch"] and pending["detail"]

    engine.set_draft("bebop x")
    await settle()
    assert engine.pending_work["search_debounce"] and engine.pending_work["suggestion_timer"]

    engine.navigate_away()
    snapshot = copy.deepcopy(
        (engine.search_state, engine.suggestion_state, engine.collection_states, engine.detail_state)
    )
    requests_before = len(stub.requests)

    for gate in gates:
        gate.release()
    await clock.advance(10)

    assert not any(engine.pending_work.values())
    assert clock.pending == 0
    assert len(stub.requests) == requests_before
    assert (
        engine.search_state,
        engine.suggestion_state,
        engine.collection_states,
        engine.detail_state,
    ) == snapshot


@pytest.mark.asyncio
async def test_diagnostics_report_request_counters(
    stub: CatalogStub, connector: JikanConnector, clock: FakeClock
) -> None:
    _route_catalog(stub)
    engine = _engine(connector, clock)
    engine.set_draft("naruto")
    await clock.advance(0.25)

    report = engine.diagnostics()

    assert report["requests"]["search"]["succeeded"] == 1
    assert report["requests"]["suggest"]["succeeded"] == 1
    assert report["pending"]["search"] is False


@pytest.mark.asyncio
async def test_engine_closes_the_connector_it_owns() -> None:
    async with SearchEngine(config=make_settings()) as engine:
        client = engine.connector.client
        assert not client.is_closed

    assert client.is_closed


@pytest.mark.asyncio
async def test_engine_leaves_injected_connector_open(
    stub: CatalogStub, connector: JikanConnector, clock: FakeClock
) -> None:
    async with _engine(connector, clock):
        pass

    assert not stub.client.is_closed
