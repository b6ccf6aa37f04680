import json

import pytest
from pydantic import ValidationError

from conftest import make_provider

from alfred.integrations import google_places
from alfred.timeutil import today_and_tomorrow
from alfred.tools.calendar import DemoCalendar
from alfred.tools.providers import (
    CachedLookup,
    ChainedLookup,
    DirectoryLookup,
    SyntheticProviderLookup,
    default_lookup,
    filter_directory,
    load_providers,
    normalize_category,
    search_providers,
    synthesize_providers,
)


def test_load_packaged_directory():
    providers = load_providers()
    assert len(providers) == 9
    assert providers[0].id == "dent_001"
    assert {p.category for p in providers} == {"dentist", "hairdresser", "car_repair", "physical_therapy"}


def test_directory_lookup():
    lookup = DirectoryLookup()
    assert lookup.get_provider("pt_001").name == "Commonwealth Physical Therapy"
    assert lookup.get_provider("missing") is None


def test_synthetic_lookup_first_variant():
    today, tomorrow = today_and_tomorrow()
    provider = SyntheticProviderLookup().get_provider("synth_bowling_01")

    assert provider.name == "Bowling of Boston"
    assert provider.category == "bowling"
    assert provider.rating == 4.7
    assert provider.available_slots == [
        f"{today.isoformat()}T10:00:00",
        f"{today.isoformat()}T14:30:00",
        f"{tomorrow.isoformat()}T09:00:00",
    ]


def test_synthetic_lookup_other_variant_and_underscored_category():
    provider = SyntheticProviderLookup().get_provider("synth_car_repair_02")
    assert provider.category == "car_repair"
    assert provider.name == "Elite Car_repair Care"
    assert provider.rating == 4.9
    assert SyntheticProviderLookup().get_provider("dent_001") is None


def test_chained_lookup_prefers_earlier_sources():
    cache = CachedLookup()
    cache.register([make_provider("dent_001", rating=1.0), make_provider("places_abc")])
    lookup = default_lookup(cache)

    assert lookup.get_provider("dent_001").rating == 4.8
    assert lookup.get_provider("places_abc").name == "Provider places_abc"
    assert lookup.get_provider("synth_yoga_01").name == "Yoga of Boston"
    assert lookup.get_provider("nope") is None
    assert ChainedLookup([]).get_provider("dent_001") is None


@pytest.mark.parametrize("spoken,category", [("Teeth", "dentist"), ("salon", "hairdresser"), ("pt", "physical_therapy"), ("yoga", "yoga")])
def test_normalize_category(spoken, category):
    assert normalize_category(spoken) == category


def test_filter_directory_by_alias_and_name():
    providers = load_providers()
    assert [p.id for p in filter_directory(providers, "mechanic")] == ["auto_001", "auto_002"]
    assert [p.id for p in filter_directory(providers, "car repair")] == ["auto_001", "auto_002"]
    assert [p.id for p in filter_directory(providers, "seaport")] == ["pt_002"]


def test_synthesize_providers_slots():
    first, second = synthesize_providers("Bowling", "Cambridge", "2026-02-10", "9:15")
    assert first.id == "synth_bowling_01"
    assert first.name == "Bowling of Cambridge"
    assert first.available_slots == ["2026-02-10T09:30:00", "2026-02-10T11:00:00"]
    assert second.available_slots == ["2026-02-10T10:00:00", "2026-02-11T10:00:00"]


def test_search_local_directory():
    providers, source = search_providers("dentist", "2026-02-10", "10:00", use_google_apis=False)
    assert source == "local"
    assert [p.id for p in providers] == ["dent_001", "dent_002", "dent_003"]


def test_search_falls_back_to_synthetic():
    providers, source = search_providers("bowling", "2026-02-10", "14:00", use_google_apis=False)
    assert source == "synthetic"
    assert [p.id for p in providers] == ["synth_bowling_01", "synth_bowling_02"]


def test_search_uses_places_when_enabled(monkeypatch):
    found = [make_provider("places_1")]
    monkeypatch.setattr(google_places, "search_places", lambda *a, **kw: found)
    assert search_providers("dentist", "2026-02-10", "10:00", use_google_apis=True) == (found, "google")


def test_search_places_empty_falls_back_to_directory(monkeypatch):
    monkeypatch.setattr(google_places, "search_places", lambda *a, **kw: [])
    _, source = search_providers("dentist", "2026-02-10", "10:00", use_google_apis=True)
    assert source == "local"


class FakePlacesClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.queries = []

    def places(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.response


def test_search_places_maps_results():
    client = FakePlacesClient({
        "status": "OK",
        "results": [
            {"place_id": "abc", "name": "Harbor Dental", "rating": 4.5, "formatted_address": "1 Harbor St", "user_ratings_total": 12},
            {"name": "No id, skipped"},
        ],
    })
    providers = google_places.search_places("dentist", "Boston", "2026-02-10", "14:00", client=client)

    assert client.queries == ["dentist near Boston"]
    assert len(providers) == 1
    assert providers[0].id == "abc"
    assert providers[0].available_slots == ["2026-02-10T15:00:00", "2026-02-11T10:00:00"]
    assert providers[0].metadata.notes == "Found via Google Maps: 12 reviews"


@pytest.mark.parametrize(
    "client",
    [
        FakePlacesClient({"status": "REQUEST_DENIED"}),
        FakePlacesClient({"status": "ZERO_RESULTS", "results": []}),
        FakePlacesClient(error=RuntimeError("timeout")),
    ],
)
def test_search_places_errors_return_empty(client):
    assert google_places.search_places("dentist", "Boston", "2026-02-10", "14:00", client=client) == []


def test_demo_calendar_conflicts_and_events():
    calendar = DemoCalendar()
    assert not calendar.check_calendar_free("2026-02-10T15:30:00", "2026-02-10T16:30:00")
    assert calendar.check_calendar_free("2026-02-10T16:00:00", "2026-02-10T17:00:00")

    event_id = calendar.create_calendar_event("Dentist", "2026-02-10T16:00:00", "2026-02-10T17:00:00", "Boston")
    assert event_id == "demo_event::Dentist::2026-02-10T16:00:00"
    assert not calendar.check_calendar_free("2026-02-10T16:30:00", "2026-02-10T17:30:00")


def test_provider_rejects_unparseable_slots():
    with pytest.raises(ValidationError):
        make_provider("bad", slots=["2026-02-10T10:00:00", "soon"])


def test_provider_accepts_suffixed_slots():
    provider = make_provider("ok", slots=["2026-02-10T10:00:00Z", "2026-02-10T11:00:00.000-05:00"])
    assert provider.available_slots == ["2026-02-10T10:00:00Z", "2026-02-10T11:00:00.000-05:00"]


def test_directory_with_bad_slot_is_rejected_at_load(tmp_path):
    path = tmp_path / "directory.json"
    path.write_text(json.dumps({"providers": [
        {"id": "x", "name": "X", "category": "dentist", "rating": 4.0, "available_slots": ["tomorrow-ish"]},
    ]}))
    with pytest.raises(ValidationError):
        load_providers(str(path))
