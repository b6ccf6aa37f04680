from typing import List, Sequence

import pytest

from alfred.adapters.receptionist_sim import ReceptionistSimulator
from alfred.handlers import BookingTools
from alfred.schema import AppointmentIntent, Provider, TimeRange
from alfred.swarm import SwarmConfig
from alfred.tools.calendar import DemoCalendar
from alfred.tools.providers import DirectoryLookup

DAY = "2026-02-10"


class FixedRandom:
    """Always returns the same draw."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


class SequenceRandom:
    """Cycles through a fixed list of draws."""

    def __init__(self, values: Sequence[float]):
        self.values = list(values)
        self.index = 0

    def random(self) -> float:
        value = self.values[self.index % len(self.values)]
        self.index += 1
        return value


def make_provider(pid: str, rating: float = 4.8, slots: List[str] = None, distance: float = 1.0, category: str = "dentist") -> Provider:
    return Provider(
        id=pid,
        name=f"Provider {pid}",
        phone="+1-617-555-0000",
        category=category,
        rating=rating,
        address="1 Test St, Boston, MA",
        distance_miles=distance,
        available_slots=slots if slots is not None else [f"{DAY}T10:00:00"],
    )


@pytest.fixture
def providers() -> List[Provider]:
    return [
        make_provider("p1", rating=4.8, distance=0.8),
        make_provider("p2", rating=4.2, distance=1.6),
        make_provider("p3", rating=3.5, distance=2.9),
    ]


@pytest.fixture
def intent() -> AppointmentIntent:
    return AppointmentIntent(
        user_id="test_user",
        service_type="dentist",
        user_location="Boston",
        preferred_time_range=TimeRange(start=f"{DAY}T09:00:00", end=f"{DAY}T12:00:00"),
    )


@pytest.fixture
def simulator(providers) -> ReceptionistSimulator:
    """Always-available receptionist that never sleeps."""
    return ReceptionistSimulator(DirectoryLookup(providers), rng=FixedRandom(0.0), time_scale=0)


@pytest.fixture
def booking_tools() -> BookingTools:
    """Tool belt over the packaged directory with deterministic calls."""
    return BookingTools(
        calendar=DemoCalendar(),
        swarm_config=SwarmConfig(),
        rng=FixedRandom(0.0),
        time_scale=0,
        use_google_apis=False,
    )
