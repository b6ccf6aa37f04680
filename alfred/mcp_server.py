from __future__ import annotations

from mcp.server.fastmcp import FastMCP

import logging
from typing import Any, Dict, List, Optional

from .handlers import BookingTools
from .logs import configure_logging

mcp = FastMCP("Alfred Booking Tools", json_response=True)

configure_logging()
logger = logging.getLogger("alfred.mcp")

tools = BookingTools()


@mcp.tool()
async def search_providers_tool(
    service_type: str,
    preferred_date: Optional[str] = None,
    preferred_time: Optional[str] = None,
    location: Optional[str] = None,
    max_distance_miles: Optional[float] = None,
) -> dict:
    """Search and rank providers for a service.

    Missing values are taken from the previous search, then defaults
    (today, 14:00, Boston).

    Args:
        service_type: Service to book (e.g., "dentist", "haircut")
        preferred_date: "YYYY-MM-DD" in the user's local time
        preferred_time: "HH:MM" in the user's local time
        location: User's location (default: "Boston")
        max_distance_miles: Distance cap (default: 10)

    Returns:
        {"session_id", "total_found", "top_matches": [...], "recommendation"}
    """
    logger.info("search_providers_tool: service_type=%s date=%s time=%s", service_type, preferred_date, preferred_time)
    return await tools.dispatch("search_providers", {
        "service_type": service_type,
        "preferred_date": preferred_date,
        "preferred_time": preferred_time,
        "location": location,
        "max_distance_miles": max_distance_miles,
    })


@mcp.tool()
async def check_calendar_availability_tool(start_time: str, end_time: str) -> dict:
    """Check whether a local-time range is free in the user's calendar."""
    return await tools.dispatch("check_calendar_availability", {"start_time": start_time, "end_time": end_time})


@mcp.tool()
async def initiate_provider_call_tool(provider_id: str, requested_slot: str, service_description: Optional[str] = None) -> dict:
    """Call one provider and try to book ``requested_slot``.

    Args:
        provider_id: Id from search_providers_tool
        requested_slot: Local time, e.g. "2026-02-10T14:00:00"
        service_description: What to ask for (default: "appointment")

    Returns:
        {"success", "booked_slot_iso", "alternative_slots", "receptionist_response", "next_action", ...}
    """
    logger.info("initiate_provider_call_tool: provider_id=%s slot=%s", provider_id, requested_slot)
    return await tools.dispatch("initiate_provider_call", {
        "provider_id": provider_id,
        "requested_slot": requested_slot,
        "service_description": service_description,
    })


@mcp.tool()
async def swarm_call_providers_tool(
    provider_ids: Optional[List[str]] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    service_description: Optional[str] = None,
) -> dict:
    """Call several providers concurrently and pick the earliest booking.

    Without arguments the top matches and time window of the last search
    are used.
    """
    params: Dict[str, Any] = {"provider_ids": provider_ids, "service_description": service_description}
    if start and end:
        params["preferred_time_range"] = {"start": start, "end": end}
    logger.info("swarm_call_providers_tool: providers=%s", provider_ids)
    return await tools.dispatch("swarm_call_providers", params)


@mcp.tool()
async def confirm_booking_tool(
    provider_id: str,
    provider_name: str,
    booked_slot: str,
    service_type: str,
    location: Optional[str] = None,
    notes: Optional[str] = None,
) -> dict:
    """Confirm a booked slot and add it to the user's calendar."""
    logger.info("confirm_booking_tool: provider_id=%s slot=%s", provider_id, booked_slot)
    return await tools.dispatch("confirm_booking", {
        "provider_id": provider_id,
        "provider_name": provider_name,
        "booked_slot": booked_slot,
        "service_type": service_type,
        "location": location,
        "notes": notes,
    })
