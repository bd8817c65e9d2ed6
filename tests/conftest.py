"""
Global pytest fixtures for the Shortlink Platform test suite.

Responsibilities:
    - Provide a controllable clock so expiry can be tested without sleeping
    - Provide isolated in-memory Storage and ShortLinkStore fixtures
    - Provide a fresh FastAPI TestClient wired to the same store via the app factory
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from main import create_app
from shortlink_platform.manager.shortlink_store import ShortLinkStore
from shortlink_platform.storage.storage import Storage

BASE_URL = "http://localhost:5000"
START = datetime(2026, 10, 19, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> Storage:
    """Fresh in-memory Storage backend."""
    return Storage()


@pytest.fixture
def store(storage: Storage, clock: FakeClock) -> ShortLinkStore:
    """ShortLinkStore wired to the storage and clock fixtures."""
    return ShortLinkStore(storage=storage, clock=clock, base_url=BASE_URL)


@pytest.fixture
def client(store: ShortLinkStore) -> TestClient:
    """
    Fresh TestClient over a new app instance serving the `store` fixture.

    Tests can reach into `store`/`clock` directly to arrange state or move time.
    """
    return TestClient(create_app(store))
