from datetime import datetime, timezone

import pytest
import pytest_asyncio

from app.services.trips.trip_service import TripService
from tests.fakes import FakeMailer, FakeTripStore


@pytest.fixture
def store():
    return FakeTripStore()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest_asyncio.fixture
async def trip_service(store, mailer):
    service = TripService(store, mailer)
    yield service
    await service.drain()


@pytest.fixture
def trip_payload():
    return {
        "destination": "Paris",
        "starts_at": datetime(2025, 6, 1, tzinfo=timezone.utc),
        "ends_at": datetime(2025, 6, 10, tzinfo=timezone.utc),
        "owner_email": "ana@example.com",
        "emails_to_invite": ["bob@x.com"],
    }
