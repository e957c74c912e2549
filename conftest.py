from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from api import create_app
from http_client import LibraryClient
from library import Library
from ui_helpers import OUTPUT_MODE_ENV


class FakeClock:
    """Manually advanced UTC clock so due dates and overdue checks are deterministic."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, **kwargs) -> None:
        self.now = self.now + timedelta(days=days, **kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def lib(clock):
    # A fresh, isolated library per test; nothing is shared between tests
    return Library(clock=clock, default_loan_days=14, default_category="General")


@pytest.fixture
def client(lib):
    with TestClient(create_app(lib)) as test_client:
        yield test_client


@pytest.fixture
def api_client(client):
    """LibraryClient talking to the in-process app instead of a real server."""
    return LibraryClient(base_url=str(client.base_url), http=client, retries=1)


@pytest.fixture
def cli(api_client, monkeypatch):
    import main

    monkeypatch.setattr(main, "get_client", lambda: api_client)
    monkeypatch.setattr(main, "_server_url", None)
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")
    return main.app
