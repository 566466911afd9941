"""Shared test fixtures and helpers."""

import os

# Must be set before landscape_api.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("REDIS_URL", None)
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("SQUARE_ACCESS_TOKEN", None)

from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from landscape_api.database import Base, SessionLocal, engine  # noqa: E402
from landscape_api.domain.scheduling.fallback import MemoryFallback  # noqa: E402
from landscape_api.main import app  # noqa: E402


class FakeClock:
    """Manually advanced clock for TTL tests"""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fallback():
    return MemoryFallback(ttl_seconds=900, max_entries=366)


@pytest.fixture
def client(fallback):
    app.state.availability_fallback = fallback
    with TestClient(app) as test_client:
        yield test_client


def make_booking_payload(
    date: str = "2025-08-29",
    time_slot: str = "09:00",
    crew_size: int = 2,
    booking_id: Optional[str] = None,
    email: str = "Jane.Doe@Example.com",
) -> dict:
    """Helper to create a booking request body with sensible defaults."""
    payload = {
        "customer": {
            "name": "Jane Doe",
            "email": email,
            "phone": "(555) 123-4567",
            "address": "12 Elm Street, Springfield",
        },
        "service": {
            "date": date,
            "timeSlot": time_slot,
            "crewSize": crew_size,
            "services": ["mulching", "weeding"],
            "yardAcreage": "0.25",
            "notes": "Gate code 1234",
        },
    }
    if booking_id:
        payload["bookingId"] = booking_id
    return payload


def slot_for(day: dict, time: str) -> dict:
    """The slot at time from an availability day view"""
    return next(s for s in day["availability"]["timeSlots"] if s["time"] == time)
