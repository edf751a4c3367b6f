"""Shared test fixtures for Ratekeeper tests."""

import asyncio
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from ratekeeper.cache import RateCache
from ratekeeper.config import ConverterSettings
from ratekeeper.errors import RemoteFetchError
from ratekeeper.resolver import RateResolver
from ratekeeper.store import MemoryStore

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for freshness tests."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class FakeSource:
    """
    In-memory RemoteQuoteSource.

    Set ``gate`` to an asyncio.Event to hold fetches open until it is set,
    and ``error`` to make every fetch fail.
    """

    def __init__(self, rates: dict[str, Decimal] | None = None):
        self.rates = dict(rates or {})
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[str] = []

    async def fetch(self, key: str) -> Decimal:
        self.calls.append(key)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if key not in self.rates:
            raise RemoteFetchError(f"Pair {key} not found in response", key=key)
        return self.rates[key]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ConverterSettings:
    return ConverterSettings(validity_period=timedelta(hours=24), fetch_timeout=None)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource({"USD_EUR": Decimal("0.92"), "EUR_ILS": Decimal("3.95")})


@pytest.fixture
def cache(settings: ConverterSettings, store: MemoryStore, clock: FakeClock) -> RateCache:
    return RateCache(settings, store, clock)


@pytest.fixture
def resolver(cache: RateCache, source: FakeSource) -> RateResolver:
    return RateResolver(cache, source)


@pytest.fixture
def mock_rate_api() -> Generator[MagicMock, None, None]:
    """Mock the rate API to avoid network calls."""
    with patch("ratekeeper.source.requests.get") as mock_get:
        mock_response = MagicMock()
        mock_response.json.return_value = {"USD_EUR": {"val": 0.92}}
        mock_response.raise_for_status = MagicMock()
        mock_get.return_value = mock_response
        yield mock_get
