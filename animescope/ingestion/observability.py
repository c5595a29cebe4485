"""Per-operation metrics and structured logging for catalog requests."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, DefaultDict, TypeVar

from animescope.core.errors import RequestCancelledError

logger = logging.getLogger("animescope.ingestion")

T = TypeVar("T")


@dataclass
class OperationMetrics:
    """Aggregated counters for a catalog operation."""
    started: int = 0
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    last_latency_ms: float | None = None
    last_error: str | None = None


class RequestMonitor:
    """Track request outcomes per operation and emit one log line per outcome.

    Every caller shares one event loop, so counters are updated without locking.
    """

    def __init__(self) -> None:
        self._metrics: DefaultDict[str, OperationMetrics] = defaultdict(OperationMetrics)

    async def track(
        self,
        operation: str,
        func: Callable[[], Awaitable[T]],
        *,
        context: dict[str, Any] | None = None,
    ) -> T:
        """Execute a catalog call while tracking metrics.

        Implementation notes:
        - Cancellation (token or task) is counted separately and never logged as a failure.
        - Failures record the error text for ``snapshot`` consumers and re-raise.
        """
        context = context or {}
        metrics = self._metrics[operation]
        metrics.started += 1
        start = time.monotonic()
        try:
            result = await func()
        except (RequestCancelledError, asyncio.CancelledError):
            metrics.cancelled += 1
            logger.debug(
                json.dumps({"event": "request_cancelled", "operation": operation, "context": context})
            )
            raise
        except Exception as exc:  # noqa: BLE001
            latency_ms = (time.monotonic() - start) * 1000
            metrics.failed += 1
            metrics.last_latency_ms = latency_ms
            metrics.last_error = str(exc)
            payload = {
                "event": "request_failure",
                "operation": operation,
                "error": str(exc),
                "error_type": type(exc).__name__,
                "latency_ms": round(latency_ms, 2),
                "context": context,
            }
            logger.warning(json.dumps(payload))
            raise

        latency_ms = (time.monotonic() - start) * 1000
        metrics.succeeded += 1
        metrics.last_latency_ms = latency_ms
        metrics.last_error = None
        payload = {
            "event": "request_success",
            "operation": operation,
            "latency_ms": round(latency_ms, 2),
            "context": context,
        }
        logger.info(json.dumps(payload))
        return result

    def snapshot(self) -> dict[str, Any]:
        """Return a serializable snapshot of all tracked operations."""
        return {
            name: {
                "started": metrics.started,
                "succeeded": metrics.succeeded,
                "failed": metrics.failed,
                "cancelled": metrics.cancelled,
                "last_latency_ms": metrics.last_latency_ms,
                "last_error": metrics.last_error,
            }
            for name, metrics in self._metrics.items()
        }
