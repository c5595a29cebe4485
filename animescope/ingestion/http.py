"""Retrying HTTP primitives shared by every catalog request."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_incrementing

from animescope.core.cancellation import CancellationToken, Sleeper
from animescope.core.clock import system_clock
from animescope.core.errors import (
    GenericRequestError,
    NotFoundError,
    RateLimitError,
    TransientNetworkError,
)

logger = logging.getLogger("animescope.ingestion.http")

RATE_LIMIT_STATUS = 429
MALFORMED_RESPONSE_MESSAGE = "Malformed response from catalog"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded linear backoff: the n-th retry waits ``base_delay * n`` seconds."""

    max_retries: int = 2
    base_delay: float = 1.2
    retry_statuses: frozenset[int] = field(default_factory=lambda: frozenset({429, 502, 503}))

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay <= 0:
            raise ValueError("base_delay must be positive")


class _RetryableStatus(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"Retryable status {status_code}")
        self.status_code = status_code


async def send_with_retry(
    client: httpx.AsyncClient,
    request: httpx.Request,
    *,
    policy: RetryPolicy,
    token: CancellationToken | None = None,
    sleep: Sleeper | None = None,
) -> httpx.Response:
    """Send ``request`` until it succeeds, fails permanently, or the budget is spent.

    Implementation notes:
    - Retryable responses are closed before backing off so pooled connections are released.
    - The final attempt's response is returned as-is, whatever its status.
    - Cancellation is checked before each attempt and during each backoff wait.
    """
    token = token or CancellationToken()
    sleeper = sleep or system_clock.sleep
    total_attempts = policy.max_retries + 1

    async def _backoff(seconds: float) -> None:
        await token.sleep(seconds, sleeper)

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(total_attempts),
            wait=wait_incrementing(start=policy.base_delay, increment=policy.base_delay),
            retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
            sleep=_backoff,
            reraise=True,
        ):
            with attempt:
                token.raise_if_cancelled()
                response = await client.send(request, stream=True)
                number = attempt.retry_state.attempt_number
                if response.status_code in policy.retry_statuses and number < total_attempts:
                    await response.aclose()
                    logger.info(
                        "Retrying %s %s after status %s (attempt %s/%s)",
                        request.method,
                        request.url.path,
                        response.status_code,
                        number,
                        total_attempts,
                    )
                    raise _RetryableStatus(response.status_code)
                try:
                    await response.aread()
                finally:
                    await response.aclose()
                return response
    except httpx.TransportError as exc:
        raise TransientNetworkError(f"Network error: {exc}") from exc
    except httpx.HTTPError as exc:
        raise GenericRequestError(MALFORMED_RESPONSE_MESSAGE) from exc
    raise TransientNetworkError("Unreachable")


def raise_for_catalog_status(response: httpx.Response, *, label: str = "Request") -> None:
    """Translate an unsuccessful response into the request error taxonomy.

    ``label`` names the request in the fallback detail used when the body carries no message.
    """
    if response.is_success:
        return
    status = response.status_code
    detail = f"{label} failed with status {status}"
    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        detail = str(payload["message"])
    if status == RATE_LIMIT_STATUS:
        raise RateLimitError(detail, status_code=status)
    if status == 404:
        raise NotFoundError(detail, status_code=status)
    raise GenericRequestError(detail, status_code=status)


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    policy: RetryPolicy,
    token: CancellationToken | None = None,
    sleep: Sleeper | None = None,
    label: str = "Request",
) -> dict[str, Any]:
    """GET ``url`` through the retry layer and decode a JSON object body."""
    request = client.build_request("GET", url, params=params)
    response = await send_with_retry(client, request, policy=policy, token=token, sleep=sleep)
    raise_for_catalog_status(response, label=label)
    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise GenericRequestError(MALFORMED_RESPONSE_MESSAGE, status_code=response.status_code) from exc
    if not isinstance(payload, dict):
        raise GenericRequestError("Unexpected response shape from catalog", status_code=response.status_code)
    return payload
