from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from langgraph.graph import StateGraph, END

from .handlers import BookingTools
from .state import BookingState
from .timeutil import add_hours_local

logger = logging.getLogger(__name__)

MAX_SINGLE_CALLS = 5


def _append(state: BookingState, *lines: str) -> List[str]:
    return state.get("transcript", []) + list(lines)


def build_graph(tools: Optional[BookingTools] = None):
    """Build and compile the appointment booking graph.

    search -> single_call | swarm_call -> confirm -> done
    """
    tools = tools or BookingTools()

    async def node_search(state: BookingState) -> BookingState:
        """Rank providers for the request and open a session."""
        logger.info("Executing node: search")
        res = await tools.search_providers({
            "service_type": state.get("service_type"),
            "preferred_date": state.get("preferred_date"),
            "preferred_time": state.get("preferred_time"),
            "location": state.get("location"),
        })
        if res.get("error"):
            return {**state, "search": res, "error": res["error"]}
        if not res.get("top_matches"):
            return {**state, "search": res, "error": "No providers found."}

        names = ", ".join(m["name"] for m in res["top_matches"])
        return {
            **state,
            "search": res,
            "transcript": _append(state, f"[SYS] Found {res['total_found']} providers ({res['source']}): {names}"),
        }

    async def node_single_call(state: BookingState) -> BookingState:
        """Call ranked providers one at a time until someone books."""
        logger.info("Executing node: single_call")
        session = tools.store.last()
        ranked = session.ranked_providers[:MAX_SINGLE_CALLS] if session else []
        fallback_slot = session.intent.preferred_time_range.start if session else None

        calls: List[Dict[str, Any]] = []
        transcript = state.get("transcript", [])
        for provider in ranked:
            slot = provider.matching_slots[0] if provider.matching_slots else fallback_slot
            res = await tools.initiate_provider_call({
                "provider_id": provider.id,
                "requested_slot": slot,
                "service_description": state.get("service_description"),
            })
            calls.append(res)
            transcript = transcript + [f"[CALL] {provider.name}: {res.get('receptionist_response')}"]
            if res.get("success"):
                booked = {"provider_id": provider.id, "provider_name": provider.name, "slot": res["booked_slot_iso"]}
                return {**state, "calls": calls, "booked": booked, "transcript": transcript}

        return {**state, "calls": calls, "booked": None, "transcript": transcript, "error": "No provider could book the slot."}

    async def node_swarm_call(state: BookingState) -> BookingState:
        """Call the top providers concurrently."""
        logger.info("Executing node: swarm_call")
        res = await tools.swarm_call_providers({"service_description": state.get("service_description")})
        if res.get("error"):
            return {**state, "swarm": res, "error": res["error"]}

        best = res.get("best_match")
        transcript = _append(
            state,
            f"[SYS] Swarm: {res['successful_bookings']}/{res['total_calls']} booked in {res['total_duration_ms']}ms",
        )
        if not best:
            return {**state, "swarm": res, "booked": None, "transcript": transcript, "error": res["recommendation"]}
        booked = {"provider_id": best["provider_id"], "provider_name": best["provider_name"], "slot": best["booked_slot_iso"]}
        return {**state, "swarm": res, "booked": booked, "transcript": transcript}

    async def node_confirm(state: BookingState) -> BookingState:
        """Check the user's calendar and confirm the booked slot."""
        logger.info("Executing node: confirm")
        booked = state["booked"]
        availability = await tools.check_calendar_availability({
            "start_time": booked["slot"],
            "end_time": add_hours_local(booked["slot"], 1),
        })
        if not availability["available"]:
            return {
                **state,
                "calendar_ok": False,
                "error": availability["message"],
                "transcript": _append(state, f"[SYS] Calendar conflict for {booked['slot']}"),
            }

        booking = await tools.confirm_booking({
            "provider_id": booked["provider_id"],
            "provider_name": booked["provider_name"],
            "booked_slot": booked["slot"],
            "service_type": state.get("service_type") or state.get("search", {}).get("search_criteria", {}).get("service_type"),
        })
        return {
            **state,
            "calendar_ok": True,
            "booking": booking,
            "transcript": _append(state, f"[SYS] Confirmed + created event: {booking['calendar']['event_id']}"),
        }

    def node_done(state: BookingState) -> BookingState:
        """Finalize workflow result."""
        logger.info("Executing node: done")
        if state.get("booking"):
            return {**state, "result": {
                "status": "success",
                **state["booking"]["details"],
                "event_id": state["booking"]["calendar"]["event_id"],
                "transcript": state.get("transcript", []),
            }}
        return {**state, "result": {
            "status": "failed",
            "error": state.get("error") or "Booking did not complete.",
            "transcript": state.get("transcript", []),
        }}

    def route_after_search(state: BookingState) -> str:
        if state.get("error"):
            return "done"
        return "swarm_call" if state.get("mode") == "swarm" else "single_call"

    def route_after_call(state: BookingState) -> str:
        return "confirm" if state.get("booked") else "done"

    g = StateGraph(BookingState)
    g.add_node("search", node_search)
    g.add_node("single_call", node_single_call)
    g.add_node("swarm_call", node_swarm_call)
    g.add_node("confirm", node_confirm)
    g.add_node("done", node_done)

    g.set_entry_point("search")
    g.add_conditional_edges(
        "search",
        route_after_search,
        {"single_call": "single_call", "swarm_call": "swarm_call", "done": "done"},
    )
    g.add_conditional_edges("single_call", route_after_call, {"confirm": "confirm", "done": "done"})
    g.add_conditional_edges("swarm_call", route_after_call, {"confirm": "confirm", "done": "done"})
    g.add_edge("confirm", "done")
    g.add_edge("done", END)

    return g.compile()
