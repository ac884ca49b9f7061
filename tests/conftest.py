"""Shared fixtures for request cache tests."""

import asyncio
from collections import deque

import pytest

from request_cache.dto import ApiRequest
from request_cache.errors import UpstreamFetchError
from request_cache.repositories import InMemoryCacheRepository
from request_cache.services import CachingFetcher

T0 = 1_700_000_000.0
DAY = 24 * 60 * 60


class FakeClock:
    """Manually advanced Unix clock."""

    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstreamClient:
    """Upstream client returning queued bodies and counting calls."""

    name = "fake"

    def __init__(self, *responses: str | Exception, delay: float = 0.0) -> None:
        self.responses = deque(responses)
        self.calls: list[ApiRequest] = []
        self.delay = delay
        self.available = True
        self.closed = False

    def queue(self, *responses: str | Exception) -> None:
        self.responses.extend(responses)

    async def request(self, request: ApiRequest) -> str:
        self.calls.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.responses:
            raise AssertionError("Unexpected upstream call")
        response = self.responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response

    async def is_available(self) -> bool:
        return self.available

    async def close(self) -> None:
        self.closed = True


def upstream_down(status_code: int = 503) -> UpstreamFetchError:
    return UpstreamFetchError(f"fake returned HTTP {status_code}", upstream="fake", status_code=status_code)


@pytest.fixture
def clock():
    """Create a fake clock at T0."""
    return FakeClock()


@pytest.fixture
def client():
    """Create a fake upstream client with nothing queued."""
    return FakeUpstreamClient()


@pytest.fixture
def store():
    """Create an empty in-memory store."""
    return InMemoryCacheRepository()


@pytest.fixture
def fetcher(store, client, clock):
    """Create a fetcher with the default 3-day threshold."""
    return CachingFetcher(store=store, client=client, clock=clock)


@pytest.fixture
def anime_stat():
    """The AnimeStat page request."""
    return ApiRequest(operation="AnimeStat", variables={"page": 5})
