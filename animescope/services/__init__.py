from . import (
    collection_loader,
    debounce,
    detail_session,
    engine,
    search_session,
    suggestion_session,
    task_slots,
)

__all__ = [
    "collection_loader",
    "debounce",
    "detail_session",
    "engine",
    "search_session",
    "suggestion_session",
    "task_slots",
]
"""Request-orchestration sessions and the engine facade over them."""
