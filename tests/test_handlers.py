import pytest

from alfred.schema import IntentStatus

SEARCH = {"service_type": "dentist", "preferred_date": "2026-02-10", "preferred_time": "10:00", "location": "Boston"}


@pytest.mark.asyncio
async def test_warmup_and_unknown_tool(booking_tools):
    assert (await booking_tools.dispatch("warmup"))["status"] == "ok"
    assert await booking_tools.dispatch("book_flight", {}) == {"error": "Unknown tool: book_flight"}
    assert set(booking_tools.tool_names) >= {"search_providers", "swarm_call_providers", "confirm_booking"}


@pytest.mark.asyncio
async def test_search_ranks_directory_and_opens_session(booking_tools):
    res = await booking_tools.dispatch("search_providers", SEARCH)

    assert res["source"] == "local"
    assert res["total_found"] == 3
    assert [m["id"] for m in res["top_matches"]] == ["dent_002", "dent_001", "dent_003"]
    assert res["top_matches"][0]["available_slots"] == ["Tue, Feb 10, 2026, 11:00 AM"]
    assert res["recommendation"].startswith("I recommend Beacon Hill Dental Group")

    session = booking_tools.store.last()
    assert session.id == res["session_id"]
    assert session.intent.preferred_time_range.start == "2026-02-10T10:00:00"
    assert session.intent.preferred_time_range.end == "2026-02-10T12:00:00"


@pytest.mark.asyncio
async def test_search_reuses_last_session_for_missing_params(booking_tools):
    await booking_tools.dispatch("search_providers", SEARCH)
    res = await booking_tools.dispatch("search_providers", {"preferred_time": "9:30"})

    assert res["search_criteria"] == {
        "service_type": "dentist",
        "date": "2026-02-10",
        "time": "09:30",
        "location": "Boston",
    }


@pytest.mark.asyncio
async def test_search_registers_synthetic_providers_for_later_calls(booking_tools):
    res = await booking_tools.dispatch("search_providers", {**SEARCH, "service_type": "bowling"})
    assert res["source"] == "synthetic"

    call = await booking_tools.dispatch("initiate_provider_call", {
        "provider_id": "synth_bowling_02",
        "requested_slot": "2026-02-10T11:00:00",
    })
    assert call["success"]
    assert call["provider"]["name"] == "Elite Bowling Care"


@pytest.mark.asyncio
async def test_initiate_call_success(booking_tools):
    res = await booking_tools.dispatch("initiate_provider_call", {
        "provider_id": "dent_002",
        "requested_slot": "2026-02-10T11:00:00.000Z",
        "service_description": "teeth cleaning",
    })

    assert res["success"]
    assert res["status"] == "success"
    assert res["booked_slot_iso"] == "2026-02-10T11:00:00"
    assert res["booked_slot"] == "Tue, Feb 10, 2026, 11:00 AM"
    assert res["provider"]["phone"] == "+1-617-555-0102"
    assert res["next_action"].startswith("Use confirm_booking")
    assert res["call_duration_ms"] == 500 + 800 + 1800 + 1000 + 500 + 800


@pytest.mark.asyncio
async def test_initiate_call_offers_alternative(booking_tools):
    res = await booking_tools.dispatch("initiate_provider_call", {
        "provider_id": "auto_002",
        "requested_slot": "2026-02-11T10:00:00",
    })

    assert not res["success"]
    assert res["alternative_slots"] == [{"display": "Tue, Feb 10, 2026, 10:00 AM", "iso": "2026-02-10T10:00:00"}]
    assert res["next_action"].startswith("Ask user about alternative")


@pytest.mark.asyncio
async def test_initiate_call_unknown_provider(booking_tools):
    res = await booking_tools.dispatch("initiate_provider_call", {
        "provider_id": "nobody",
        "requested_slot": "2026-02-10T10:00:00",
    })
    assert not res["success"]
    assert res["receptionist_response"] == "Provider not found"
    assert res["provider"]["phone"] is None


@pytest.mark.asyncio
async def test_initiate_call_requires_params(booking_tools):
    res = await booking_tools.dispatch("initiate_provider_call", {"provider_id": "dent_001"})
    assert "error" in res


@pytest.mark.asyncio
async def test_swarm_uses_last_search(booking_tools):
    await booking_tools.dispatch("search_providers", SEARCH)
    res = await booking_tools.dispatch("swarm_call_providers", {"service_description": "cleaning"})

    assert res["swarm_completed"]
    assert res["total_calls"] == 3
    assert res["successful_bookings"] == 2
    assert res["failed_or_unavailable"] == 1
    assert res["cancelled"] == 0
    # dent_001 accepts 09:00 for a 10:00 request, which beats dent_002's 11:00
    assert res["best_match"]["provider_id"] == "dent_001"
    assert res["best_match"]["booked_slot_iso"] == "2026-02-10T09:00:00"


@pytest.mark.asyncio
async def test_swarm_with_explicit_ids_and_overrides(booking_tools):
    res = await booking_tools.dispatch("swarm_call_providers", {
        "provider_ids": ["dent_003", "dent_002", "dent_001"],
        "preferred_time_range": {"start": "2026-02-10T10:00:00Z", "end": "2026-02-10T12:00:00Z"},
        "max_concurrent_calls": 1,
    })

    assert [r["status"] for r in res["results"]] == ["failed", "success", "cancelled"]
    assert res["best_match"]["provider_id"] == "dent_002"


@pytest.mark.asyncio
async def test_swarm_without_session_or_params(booking_tools):
    assert "error" in await booking_tools.dispatch("swarm_call_providers", {})


@pytest.mark.asyncio
async def test_check_calendar_availability(booking_tools):
    busy = await booking_tools.dispatch("check_calendar_availability", {
        "start_time": "2026-02-10T15:30:00Z",
        "end_time": "2026-02-10T16:30:00Z",
    })
    assert not busy["available"]
    assert busy["conflicts"][0]["title"] == "Team standup"

    free = await booking_tools.dispatch("check_calendar_availability", {
        "start_time": "2026-02-10T11:00:00",
        "end_time": "2026-02-10T12:00:00",
    })
    assert free["available"]


@pytest.mark.asyncio
async def test_confirm_booking_marks_session_booked(booking_tools):
    await booking_tools.dispatch("search_providers", SEARCH)
    res = await booking_tools.dispatch("confirm_booking", {
        "provider_id": "dent_002",
        "provider_name": "Beacon Hill Dental Group",
        "booked_slot": "2026-02-10T11:00:00",
        "service_type": "dentist",
    })

    assert res["booking_confirmed"]
    assert res["calendar"] == {"added": True, "event_id": "demo_event::dentist Appointment - Beacon Hill Dental Group::2026-02-10T11:00:00"}
    assert res["details"]["provider_address"] == "75 Charles St, Boston, MA"

    session = booking_tools.store.last()
    assert session.booked_provider_id == "dent_002"
    assert session.intent.status == IntentStatus.BOOKED
    assert not booking_tools.calendar.check_calendar_free("2026-02-10T11:30:00", "2026-02-10T12:30:00")


@pytest.mark.asyncio
async def test_handler_errors_are_returned(booking_tools):
    res = await booking_tools.dispatch("confirm_booking", {"provider_name": "x"})
    assert "error" in res


@pytest.mark.asyncio
async def test_initiate_call_with_unreadable_slot_returns_call_outcome(booking_tools):
    res = await booking_tools.dispatch("initiate_provider_call", {
        "provider_id": "dent_001",
        "requested_slot": "next tuesday",
    })

    assert "error" not in res
    assert not res["success"]
    assert res["requested_slot"] == "next tuesday"
    assert res["alternative_slots"] == [{"display": "Tue, Feb 10, 2026, 9:00 AM", "iso": "2026-02-10T09:00:00"}]


@pytest.mark.asyncio
async def test_initiate_call_advances_session_call_index(booking_tools):
    await booking_tools.dispatch("search_providers", SEARCH)
    session_id = booking_tools.store.last().id

    await booking_tools.dispatch("initiate_provider_call", {"provider_id": "dent_002", "requested_slot": "2026-02-10T11:00:00"})
    await booking_tools.dispatch("initiate_provider_call", {"provider_id": "dent_001", "requested_slot": "2026-02-10T10:00:00"})

    assert booking_tools.store.get(session_id).current_call_index == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"end_time": "2026-02-10T16:00:00"},
        {"start_time": "after lunch", "end_time": "2026-02-10T16:00:00"},
        {"start_time": None, "end_time": None},
    ],
)
async def test_calendar_check_fails_open_on_bad_range(booking_tools, params):
    res = await booking_tools.dispatch("check_calendar_availability", params)

    assert "error" not in res
    assert res["available"]
    assert res["conflicts"] == []
