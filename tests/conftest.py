from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


from batch_geocoding.geocoding.base import Geocoder, GeocodingProvider
from batch_geocoding.geocoding.models import CandidateRecord, Coordinates
from batch_geocoding.geocoding.throttling import Clock, reset_shared_rate_limiter


class FakeClock(Clock):
    """Clock that only moves when slept on or advanced."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds > 0:
            self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubProvider(GeocodingProvider):
    """Replays outcomes in order; the last one repeats forever."""

    def __init__(self, outcomes, clock: FakeClock | None = None, on_search=None):
        self.outcomes = list(outcomes)
        self.clock = clock
        self.on_search = on_search
        self.calls: list[str] = []
        self.call_times: list[float] = []

    def search(self, text, timeout):
        self.calls.append(text)
        if self.clock is not None:
            self.call_times.append(self.clock.monotonic())
        if self.on_search is not None:
            self.on_search(text)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class StubGeocoder(Geocoder):
    """Resolves by city; a city mapped to an exception raises it."""

    def __init__(self, by_city=None, default=Coordinates(10.0, 20.0)):
        self.by_city = by_city or {}
        self.default = default
        self.queries = []

    def geocode(self, query, cancel_event=None):
        self.queries.append(query)
        outcome = self.by_city.get(query.city, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_limiter():
    reset_shared_rate_limiter()
    yield
    reset_shared_rate_limiter()


@pytest.fixture
def people():
    return [
        CandidateRecord(name="Alice", street="1 Main St", city="London", country="UK"),
        CandidateRecord(name="Bob", street="", city="Paris", state="", country="France"),
        CandidateRecord(name="Carol", street="5 Elm Rd", city="Springfield", state="IL", country="USA"),
        CandidateRecord(name="", street="", city="Berlin", country="Germany"),
        CandidateRecord(name="Eve", street="9 Quay", city="Dublin", country="Ireland"),
    ]
