import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from eventrec_core.types import EventRecord
from eventrec_user.store import InMemoryRepository
from eventrec_user.types import UserRecord

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
TEST_USER_ID = "00000000-0000-0000-0000-000000000000"


def raw_event(
    id: str,
    country: str | None = "US",
    category: str = "Music",
    title: str = "Live show",
    **extra: Any,
) -> Dict[str, Any]:
    """External-shape record as returned by an event source."""
    row: Dict[str, Any] = {
        "id": id,
        "source": "fake",
        "title": title,
        "countryCode": country,
        "category": category,
    }
    row.update(extra)
    return row


class FakeEventSource:
    """
    Scripted event source.

    `by_country` maps a country code (None = global query) to the records
    returned; `fail` lists country codes that raise; `slow` lists codes that
    never answer in time.
    """

    name = "fake"

    def __init__(
        self,
        by_country: Dict[str | None, List[Dict[str, Any]]] | None = None,
        *,
        fail: set | None = None,
        slow: set | None = None,
        fallback_error: Exception | None = None,
    ):
        self.by_country = by_country or {}
        self.fail = fail or set()
        self.slow = slow or set()
        self.fallback_error = fallback_error
        self.calls: List[Dict[str, Any]] = []

    async def search(self, *, keyword=None, category=None, country_code=None, page_size=100):
        self.calls.append(
            {"keyword": keyword, "category": category, "country_code": country_code}
        )
        if country_code is None and self.fallback_error is not None:
            raise self.fallback_error
        if country_code in self.fail:
            raise RuntimeError(f"boom {country_code}")
        if country_code in self.slow:
            await asyncio.sleep(10)
        return [dict(r) for r in self.by_country.get(country_code, [])]


def make_event(id: str, **fields: Any) -> EventRecord:
    base: Dict[str, Any] = {
        "id": id,
        "provider": "Ticketmaster",
        "event_id": f"p-{id}",
        "title": f"Event {id}",
        "category": "Music",
        "country_code": "US",
        "start_utc": NOW + timedelta(days=3),
    }
    base.update(fields)
    return EventRecord(**base)


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def repo() -> InMemoryRepository:
    r = InMemoryRepository()
    r.add_user(UserRecord(id=TEST_USER_ID, name="Test", lat=-37.81, lon=144.96))
    return r


@pytest.fixture()
def fake_source() -> FakeEventSource:
    return FakeEventSource()


@pytest.fixture()
def test_client(repo, fake_source):
    from app.main import app  # type: ignore
    from app.deps.auth import resolve_user_id  # type: ignore
    from eventrec_recommendation.engine import PersonalizationEngine
    from eventrec_sources.ingestion import EventIngestionService

    def _fake_user_id():
        return TEST_USER_ID

    app.dependency_overrides[resolve_user_id] = _fake_user_id

    with TestClient(app) as client:
        # swap the lifespan-built stack for the test doubles
        app.state.repo = repo
        app.state.engine = PersonalizationEngine(
            repo, fake_source, regions=("US", "GB", "AU"), region_timeout_s=0.5, clock=lambda: NOW
        )
        app.state.ingestion = EventIngestionService(repo, fake_source)
        try:
            yield client
        finally:
            app.dependency_overrides.clear()
