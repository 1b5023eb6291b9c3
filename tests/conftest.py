"""
Pytest configuration and fixtures for the draw data collector test suite.
"""

from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest


class RecordingSleep:
    """Async sleep stand-in that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


Route = Union[str, int, Tuple[int, str], Callable[[httpx.Request], httpx.Response]]


@pytest.fixture
def mock_transport_factory(recording_sleep):
    """
    Build a RetryingTransport whose HTTP client is served from a URL map.

    Route values: body text (200), a status code, (status, body), or a
    callable receiving the request. Unmapped URLs return 404.
    """
    from drawdata.fetchers.transport import RetryingTransport

    def factory(routes: Dict[str, Route], max_attempts: int = 1, requests: list = None):
        def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            route = routes.get(str(request.url))
            if route is None:
                return httpx.Response(404, text="not found")
            if callable(route):
                return route(request)
            if isinstance(route, int):
                return httpx.Response(route, text="")
            if isinstance(route, tuple):
                return httpx.Response(route[0], text=route[1])
            return httpx.Response(200, text=route)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return RetryingTransport(
            max_attempts=max_attempts,
            backoff_base=1.0,
            sleep=recording_sleep,
            client=client,
        )

    return factory


@pytest.fixture
def store(db):
    """RegulatoryStore backed by the test database."""
    from drawdata.services.store import RegulatoryStore

    return RegulatoryStore()


@pytest.fixture
def zz_source_class():
    """
    A minimal extraction module for source "ZZ".

    Produces two elk units and draw history for unit "1" only; individual
    producers can be replaced per test by assigning coroutines.
    """
    from drawdata.sources.base import BaseSource
    from drawdata.sources.types import DrawHistoryRecord, UnitRecord

    class ZZSource(BaseSource):
        source_id = "ZZ"
        source_name = "Test Agency"
        source_url = "https://agency.example/zz"

        async def collect_units(self):
            return [
                UnitRecord(source="ZZ", species="elk", unit_code="1", unit_name="Unit 1"),
                UnitRecord(source="ZZ", species="elk", unit_code="2", unit_name="Unit 2"),
            ]

        async def collect_draw_history(self):
            return [
                DrawHistoryRecord(unit_ref="ZZ:elk:1", year=2025, applicants=100, tags=10),
            ]

    return ZZSource


class MemoryFingerprintStore:
    """In-memory stand-in for the fingerprint kind of RegulatoryStore."""

    def __init__(self):
        self.rows = {}

    def upsert(self, kind, rows):
        for row in rows:
            self.rows[(row["source"], row["url"])] = row
        return len(rows)

    def lookup(self, kind, filters):
        row = self.rows.get((filters["source"], filters["url"]))
        return [row] if row else []


@pytest.fixture
def memory_store():
    return MemoryFingerprintStore()
