"""Shared pytest fixtures for the full slotlimiter test suite."""

from __future__ import annotations

from typing import Callable

import fakeredis
import pytest
from redis.asyncio import ConnectionPool


@pytest.fixture
def fake_server() -> fakeredis.FakeServer:
    """Provide one in-memory Redis server shared by every client in a test."""

    return fakeredis.FakeServer()


@pytest.fixture
def fake_pool_factory(fake_server: fakeredis.FakeServer) -> Callable[[], ConnectionPool]:
    """Build connection pools bound to the shared fake server.

    Pools must be created inside the running event loop of the test scenario.
    """

    def _factory() -> ConnectionPool:
        """Return the pool of a fresh fake async client."""

        return fakeredis.FakeAsyncRedis(server=fake_server).connection_pool

    return _factory
