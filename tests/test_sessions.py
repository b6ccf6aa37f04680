from alfred.sessions import BookingSession, InMemorySessionStore, new_session_id


def _session(sid, intent):
    return BookingSession(id=sid, intent=intent)


def test_empty_store():
    store = InMemorySessionStore()
    assert store.last() is None
    assert store.get("missing") is None
    assert store.update("missing", current_call_index=1) is None


def test_last_is_most_recent_put(intent):
    store = InMemorySessionStore()
    store.put(_session("a", intent))
    store.put(_session("b", intent))
    assert store.last().id == "b"

    # Re-putting an older session makes it the newest again
    store.put(store.get("a"))
    assert store.last().id == "a"


def test_update_replaces_fields_in_place(intent):
    store = InMemorySessionStore()
    store.put(_session("a", intent))
    store.put(_session("b", intent))

    updated = store.update("a", current_call_index=2, booked_slot="2026-02-10T10:00:00")

    assert updated.current_call_index == 2
    assert store.get("a").booked_slot == "2026-02-10T10:00:00"
    assert store.last().id == "b"


def test_session_ids_are_unique_within_a_millisecond():
    ids = {new_session_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(sid.startswith("session_") for sid in ids)
