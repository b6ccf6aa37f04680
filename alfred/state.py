"""State management for the Alfred booking workflow.

This module defines the state structure used throughout the LangGraph workflow.
The state is passed between nodes and accumulates information as the agent
progresses from search to calls to confirmation.
"""

from __future__ import annotations
from typing import TypedDict, Optional, List, Dict, Any

class BookingState(TypedDict, total=False):
    """State object for the appointment booking workflow.

    Using total=False allows nodes to populate fields incrementally.

    Attributes:
        service_type: Requested service (e.g., "dentist", "haircut")
        preferred_date: "YYYY-MM-DD", local
        preferred_time: "HH:MM", local
        location: User's location string (e.g., "Boston")
        mode: "single" (call ranked providers one by one) or "swarm"
        service_description: What the agent asks for on the phone

        search: Output of the search_providers tool
        calls: Outputs of initiate_provider_call, one per provider tried
        swarm: Output of swarm_call_providers
        booked: {"provider_id", "provider_name", "slot"} once a call succeeded
        calendar_ok: Whether the booked slot is free in the user's calendar
        booking: Output of confirm_booking

        transcript: Conversation log for debugging and display
        result: Final booking result
        error: Error message if workflow fails
    """

    # Core request
    service_type: str
    preferred_date: str
    preferred_time: str
    location: str
    mode: str
    service_description: Optional[str]

    # Tool outputs
    search: Dict[str, Any]
    calls: List[Dict[str, Any]]
    swarm: Dict[str, Any]
    booked: Optional[Dict[str, str]]
    calendar_ok: bool
    booking: Dict[str, Any]

    # Logging + result
    transcript: List[str]
    result: Dict[str, Any]

    # Errors
    error: Optional[str]
