"""Booking session storage.

A search creates a session so that follow-up tool calls from the voice
agent can fill in parameters the user didn't repeat. Sessions live only
for the lifetime of the process; swap in another ``SessionStore`` to keep
them elsewhere.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections import OrderedDict
from typing import Any, List, Optional, Protocol

from pydantic import BaseModel, Field

from .schema import AppointmentIntent, RankedProvider


class BookingSession(BaseModel):
    id: str
    intent: AppointmentIntent
    ranked_providers: List[RankedProvider] = Field(default_factory=list)
    current_call_index: int = 0
    booked_provider_id: Optional[str] = None
    booked_slot: Optional[str] = None


def new_session_id() -> str:
    # Millisecond prefix keeps ids sortable; the suffix keeps them unique
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


class SessionStore(Protocol):
    def get(self, session_id: str) -> Optional[BookingSession]:
        ...

    def put(self, session: BookingSession) -> None:
        ...

    def update(self, session_id: str, **changes: Any) -> Optional[BookingSession]:
        ...

    def last(self) -> Optional[BookingSession]:
        ...


class InMemorySessionStore:
    """Insertion-ordered in-process store; ``last()`` is the newest put."""

    def __init__(self):
        self._sessions: "OrderedDict[str, BookingSession]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[BookingSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def put(self, session: BookingSession) -> None:
        with self._lock:
            self._sessions[session.id] = session
            self._sessions.move_to_end(session.id)

    def update(self, session_id: str, **changes: Any) -> Optional[BookingSession]:
        """Replace fields of a stored session without changing its position."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            updated = session.model_copy(update=changes)
            self._sessions[session_id] = updated
            return updated

    def last(self) -> Optional[BookingSession]:
        with self._lock:
            if not self._sessions:
                return None
            return next(reversed(self._sessions.values()))
