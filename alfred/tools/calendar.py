"""Calendar availability and event management.

The real calendar (OAuth, Google Calendar API) lives outside this package.
This module is the narrow seam the booking tools talk to: an in-process
stand-in that keeps a list of busy blocks and hands out event ids.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Optional

from ..timeutil import parse_local

logger = logging.getLogger(__name__)

# Hard-coded busy blocks for the demo calendar
BUSY = [
    {"title": "Team standup", "start": "2026-02-10T15:00:00", "end": "2026-02-10T16:00:00"},
]


class DemoCalendar:
    """Busy-block calendar used when no real calendar is connected."""

    def __init__(self, busy: Optional[List[Dict[str, str]]] = None):
        self.busy = list(BUSY if busy is None else busy)
        self.events: List[Dict[str, str]] = []

    def conflicts(self, start: str, end: str) -> List[Dict[str, str]]:
        """Busy blocks overlapping ``[start, end)``."""
        s, e = parse_local(start), parse_local(end)
        # Blocks don't overlap if: end <= busy_start OR start >= busy_end
        return [
            b for b in self.busy + self.events
            if not (e <= parse_local(b["start"]) or s >= parse_local(b["end"]))
        ]

    def check_calendar_free(self, start: str, end: str) -> bool:
        return not self.conflicts(start, end)

    def create_calendar_event(self, title: str, start: str, end: str, location: str, description: str = "") -> str:
        """Record the event as busy and return its id."""
        event_id = f"demo_event::{title}::{start}"
        self.events.append({"title": title, "start": start, "end": end, "location": location, "description": description})
        logger.info("create_calendar_event: %s at %s (%s)", title, start, location)
        return event_id
