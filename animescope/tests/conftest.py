"""Shared pytest fixtures for engine tests."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from animescope.ingestion.jikan import JikanConnector
from animescope.tests.utils import CatalogStub, FakeClock, make_connector


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture()
async def stub() -> AsyncIterator[CatalogStub]:
    catalog = CatalogStub()
    try:
        yield catalog
    finally:
        await catalog.client.aclose()


@pytest.fixture()
def connector(stub: CatalogStub, clock: FakeClock) -> JikanConnector:
    return make_connector(stub, clock)
