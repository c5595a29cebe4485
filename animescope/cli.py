"""Command-line entry point for querying the catalog through the engine."""

from __future__ import annotations

import argparse
import asyncio
import logging

from animescope.core.config import settings
from animescope.schema.state import CollectionStatus, RequestStatus
from animescope.services.engine import SearchEngine

LOG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"


def _configure_logging(verbose: bool) -> None:
    level = "DEBUG" if verbose else settings.log_level
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


async def _wait_idle(engine: SearchEngine, *, poll_seconds: float = 0.05) -> None:
    while any(engine.pending_work.values()):
        await asyncio.sleep(poll_seconds)


async def _search(engine: SearchEngine, query: str, page: int) -> int:
    engine.search.set_query(query)
    await _wait_idle(engine)
    if page > 1:
        engine.set_page(page)
        await _wait_idle(engine)
    state = engine.search_state
    if state.status == RequestStatus.ERROR:
        print(state.error)
        return 1
    print(f"Page {state.page}/{state.total_pages} for {state.query!r}")
    for item in state.results:
        print(f"  [{item.mal_id}] {item.display_title}")
    return 0


async def _suggest(engine: SearchEngine, query: str) -> int:
    engine.suggestions.on_draft(query)
    await _wait_idle(engine)
    state = engine.suggestion_state
    if state.status == RequestStatus.ERROR:
        print(state.error)
        return 1
    for item in state.items:
        print(f"  [{item.mal_id}] {item.display_title}")
    return 0


async def _collections(engine: SearchEngine) -> int:
    engine.activate()
    await _wait_idle(engine)
    failed = 0
    for name, state in engine.collection_states.items():
        if state.status == CollectionStatus.FAILED:
            failed += 1
            print(f"{name}: {state.error}")
            continue
        print(f"{name}:")
        for item in state.items:
            print(f"  [{item.mal_id}] {item.display_title}")
    return 1 if failed else 0


async def _detail(engine: SearchEngine, mal_id: int) -> int:
    engine.show_detail(mal_id)
    await _wait_idle(engine)
    state = engine.detail_state
    if state.error or state.current is None:
        print(state.error or "No detail available.")
        return 1
    detail = state.current
    print(f"{detail.display_title} ({detail.type or 'unknown'}, {detail.episodes or '?'} episodes)")
    if detail.score is not None:
        print(f"Score: {detail.score}")
    if detail.synopsis:
        print(detail.synopsis)
    return 0


async def _run(args: argparse.Namespace) -> int:
    async with SearchEngine() as engine:
        if args.command == "search":
            return await _search(engine, args.query, args.page)
        if args.command == "suggest":
            return await _suggest(engine, args.query)
        if args.command == "collections":
            return await _collections(engine)
        return await _detail(engine, args.mal_id)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Search the Jikan anime catalog")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search_parser = subparsers.add_parser("search", help="Run a paginated search")
    search_parser.add_argument("query")
    search_parser.add_argument("--page", type=int, default=1)

    suggest_parser = subparsers.add_parser("suggest", help="Show live suggestions for a draft")
    suggest_parser.add_argument("query")

    subparsers.add_parser("collections", help="Load the curated collections")

    detail_parser = subparsers.add_parser("detail", help="Show one catalog entry")
    detail_parser.add_argument("mal_id", type=int)

    args = parser.parse_args(argv)
    if getattr(args, "page", 1) < 1:
        parser.error("--page must be >= 1")
    _configure_logging(args.verbose)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
