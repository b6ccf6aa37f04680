"""Tool handlers called by the voice agent.

Each handler takes the raw ``parameters`` dict the agent sends and returns
a JSON-serialisable dict. The HTTP webhook (``api.py``) and the MCP server
both route into :class:`BookingTools`, so the two surfaces behave the same.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .adapters.receptionist_sim import RandomSource, ReceptionistSimulator
from .schema import AppointmentIntent, CallState, IntentStatus, Provider, TimeRange
from .sessions import BookingSession, InMemorySessionStore, SessionStore, new_session_id
from .swarm import SwarmConfig, SwarmOrchestrator, initiate_provider_call
from .timeutil import add_hours_local, format_for_user, normalize_hhmm, parse_local, strip_tz_suffix, today_and_tomorrow
from .tools.calendar import DemoCalendar
from .tools.providers import CachedLookup, ProviderLookup, default_lookup, search_providers
from .tools.scoring import rank_providers

logger = logging.getLogger(__name__)

Params = Dict[str, Any]

SEARCH_WINDOW_HOURS = 2
APPOINTMENT_LENGTH_HOURS = 1
TOP_MATCHES = 5


def _placeholder(provider_id: str) -> Provider:
    # Unknown ids still go through the call machinery and come back "not found"
    return Provider(id=provider_id, name="Unknown", category="unknown", rating=0.0)


def _display(slot: str) -> str:
    # Agent-supplied text that isn't a timestamp is echoed back as-is
    try:
        return format_for_user(slot)
    except ValueError:
        return slot


def _iso_and_display(slot: Optional[str]) -> Dict[str, Optional[str]]:
    if not slot:
        return {"display": None, "iso": None}
    return {"display": _display(slot), "iso": strip_tz_suffix(slot)}


class BookingTools:
    """The agent's tool belt: search, calendar, single call, swarm, confirm.

    Collaborators are injected so tests can pin randomness and skip sleeping:

        tools = BookingTools(rng=FixedRandom(0.0), time_scale=0)
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        lookup: Optional[ProviderLookup] = None,
        simulator: Optional[ReceptionistSimulator] = None,
        calendar: Optional[DemoCalendar] = None,
        swarm_config: Optional[SwarmConfig] = None,
        rng: Optional[RandomSource] = None,
        time_scale: Optional[float] = None,
        directory: Optional[List[Provider]] = None,
        use_google_apis: Optional[bool] = None,
    ):
        self.cache = CachedLookup()
        self.lookup = lookup or default_lookup(self.cache)
        self.store = store or InMemorySessionStore()
        self.simulator = simulator or ReceptionistSimulator(self.lookup, rng=rng, time_scale=time_scale)
        self.calendar = calendar or DemoCalendar()
        self.swarm_config = swarm_config or SwarmConfig.from_settings()
        self.directory = directory
        self.use_google_apis = use_google_apis

        self._handlers: Dict[str, Callable[[Params], Awaitable[Dict[str, Any]]]] = {
            "search_providers": self.search_providers,
            "check_calendar_availability": self.check_calendar_availability,
            "initiate_provider_call": self.initiate_provider_call,
            "swarm_call_providers": self.swarm_call_providers,
            "confirm_booking": self.confirm_booking,
            "warmup": self.warmup,
        }

    @property
    def tool_names(self) -> List[str]:
        return list(self._handlers)

    async def dispatch(self, tool_name: str, parameters: Optional[Params] = None) -> Dict[str, Any]:
        """Route a tool call by name. Errors come back as ``{"error": ...}``."""
        handler = self._handlers.get(tool_name)
        if handler is None:
            logger.warning("Unknown tool call: %s", tool_name)
            return {"error": f"Unknown tool: {tool_name}"}
        try:
            return await handler(parameters or {})
        except Exception as e:
            logger.exception("tool %s failed", tool_name)
            return {"error": str(e)}

    async def warmup(self, params: Params) -> Dict[str, Any]:
        return {"status": "ok", "message": "Webhook is ready"}

    async def search_providers(self, params: Params) -> Dict[str, Any]:
        """Rank providers for a service and open a booking session.

        Missing parameters are filled from the most recent session, then
        from defaults (today, 14:00, Boston).
        """
        last = self.store.last()
        last_start = last.intent.preferred_time_range.start if last else None

        service_type = params.get("service_type") or (last.intent.service_type if last else None) or "general service"
        preferred_date = params.get("preferred_date") or (last_start.split("T")[0] if last_start else None) \
            or today_and_tomorrow()[0].isoformat()
        preferred_time = params.get("preferred_time") \
            or (last_start.split("T")[1][:5] if last_start and "T" in last_start else None) \
            or "14:00"
        preferred_time = normalize_hhmm(preferred_time)
        location = params.get("location") or (last.intent.user_location if last else None) or "Boston"
        max_distance = float(params.get("max_distance_miles") or 10)

        logger.info("search_providers: %s | %s %s | %s", service_type, preferred_date, preferred_time, location)

        start = f"{preferred_date}T{preferred_time}:00"
        intent = AppointmentIntent(
            user_id="voice_user",
            service_type=service_type,
            user_location=location,
            preferred_time_range=TimeRange(start=start, end=add_hours_local(start, SEARCH_WINDOW_HOURS)),
            max_distance_miles=max_distance,
        )

        loop = asyncio.get_running_loop()
        providers, source = await loop.run_in_executor(
            None,
            lambda: search_providers(
                service_type, preferred_date, preferred_time, location,
                directory=self.directory, use_google_apis=self.use_google_apis,
            ),
        )
        self.cache.register(providers)
        ranked = rank_providers(providers, intent)

        session = BookingSession(id=new_session_id(), intent=intent, ranked_providers=ranked)
        self.store.put(session)

        top = [
            {
                "id": p.id,
                "name": p.name,
                "phone": p.phone,
                "rating": p.rating,
                "distance_miles": p.distance_miles,
                "address": p.address,
                "score": p.final_score,
                "available_slots": [format_for_user(s) for s in p.matching_slots],
                "metadata": p.metadata.model_dump(exclude_none=True) if p.metadata else None,
            }
            for p in ranked[:TOP_MATCHES]
        ]
        return {
            "session_id": session.id,
            "source": source,
            "total_found": len(ranked),
            "search_criteria": {
                "service_type": service_type,
                "date": preferred_date,
                "time": preferred_time,
                "location": location,
            },
            "top_matches": top,
            "recommendation": (
                f"I recommend {top[0]['name']} - they have a {top[0]['rating']} star rating."
                if top else "No providers found matching your criteria."
            ),
        }

    async def check_calendar_availability(self, params: Params) -> Dict[str, Any]:
        try:
            start, end = strip_tz_suffix(params["start_time"]), strip_tz_suffix(params["end_time"])
            conflicts = self.calendar.conflicts(start, end)
        except (KeyError, AttributeError, ValueError) as e:
            # Calendar checks fail open
            logger.warning("check_calendar_availability: cannot read time range (%s), assuming free", e)
            return {
                "available": True,
                "conflicts": [],
                "message": "I couldn't read that time range, so I'm treating it as free on your calendar.",
            }
        return {
            "available": not conflicts,
            "conflicts": [{"title": c.get("title"), "start": c["start"], "end": c["end"]} for c in conflicts],
            "message": (
                f"You have {len(conflicts)} event(s) during this time: {', '.join(c.get('title', 'Busy') for c in conflicts)}"
                if conflicts else "This time slot is free on your calendar."
            ),
        }

    async def initiate_provider_call(self, params: Params) -> Dict[str, Any]:
        provider_id = params.get("provider_id")
        requested_slot = params.get("requested_slot")
        if not provider_id or not requested_slot:
            return {"error": "provider_id and requested_slot are required"}
        requested_slot = strip_tz_suffix(requested_slot)

        logger.info("Initiating call to provider %s for slot %s", provider_id, requested_slot)
        provider = self.lookup.get_provider(provider_id)
        status = await initiate_provider_call(
            self.simulator,
            provider or _placeholder(provider_id),
            requested_slot,
            params.get("service_description"),
            timeout_ms=self.swarm_config.timeout_ms,
            lookup=self.lookup,
        )

        last = self.store.last()
        if last is not None:
            self.store.update(last.id, current_call_index=last.current_call_index + 1)

        result = status.result
        booked = _iso_and_display(result.booked_slot if result else None)
        alternatives = [_iso_and_display(s) for s in (result.alternative_slots or [])] if result else []

        if status.status == CallState.SUCCESS:
            next_action = "Use confirm_booking to finalize and add to calendar"
        elif alternatives:
            next_action = "Ask user about alternative slots or try next provider"
        else:
            next_action = "Try the next provider in the list"

        return {
            "call_completed": status.status != CallState.TIMEOUT,
            "status": status.status.value,
            "success": status.status == CallState.SUCCESS,
            "provider": {
                "id": provider_id,
                "name": result.provider_name if result else status.provider_name,
                "phone": provider.phone if provider else None,
                "address": provider.address if provider else None,
            },
            "requested_slot": _display(requested_slot),
            "booked_slot": booked["display"],
            "booked_slot_iso": booked["iso"],
            "alternative_slots": alternatives,
            "receptionist_response": result.message if result else "The call timed out.",
            "call_duration_ms": result.wait_time_ms if result else self.swarm_config.timeout_ms,
            "next_action": next_action,
        }

    async def swarm_call_providers(self, params: Params) -> Dict[str, Any]:
        last = self.store.last()
        provider_ids = params.get("provider_ids") or (
            [p.id for p in last.ranked_providers[:TOP_MATCHES]] if last else []
        )
        time_range = params.get("preferred_time_range") or (
            last.intent.preferred_time_range.model_dump() if last else None
        )
        if not provider_ids or not time_range:
            return {"error": "provider_ids and preferred_time_range are required"}

        range_start = strip_tz_suffix(time_range["start"])
        range_end = strip_tz_suffix(time_range["end"])
        lo, hi = parse_local(range_start), parse_local(range_end)

        def slot_for(provider: Provider) -> str:
            # Ask for the provider's own slot inside the window when it has one
            for slot in provider.available_slots:
                if lo <= parse_local(slot) <= hi:
                    return strip_tz_suffix(slot)
            return range_start

        providers = [self.lookup.get_provider(pid) or _placeholder(pid) for pid in provider_ids]
        overrides = {
            k: params[k] for k in ("max_concurrent_calls", "stop_on_first_success", "timeout_ms")
            if params.get(k) is not None
        }
        config = dataclasses.replace(self.swarm_config, **overrides)

        logger.info("Swarm mode: calling %d providers", len(providers))
        orchestrator = SwarmOrchestrator(self.simulator, lookup=self.lookup, config=config)
        result = await orchestrator.execute(providers, range_start, params.get("service_description"), slot_for=slot_for)

        best = result.best_match
        best_slot = best.result.booked_slot if best and best.result else None
        return {
            "swarm_completed": True,
            "total_calls": result.total_providers,
            "successful_bookings": len(result.successful_bookings),
            "failed_or_unavailable": len(result.failed_calls),
            "cancelled": len(result.cancelled_calls),
            "total_duration_ms": result.total_duration_ms,
            "results": [
                {
                    "provider_id": s.provider_id,
                    "provider_name": s.provider_name,
                    "status": s.status.value,
                    "success": s.status == CallState.SUCCESS,
                    "booked_slot": _iso_and_display(s.result.booked_slot if s.result else None)["display"],
                    "booked_slot_iso": _iso_and_display(s.result.booked_slot if s.result else None)["iso"],
                    "message": s.result.message if s.result else None,
                }
                for s in result.call_statuses
            ],
            "best_match": {
                "provider_id": best.provider_id,
                "provider_name": best.provider_name,
                "booked_slot": format_for_user(best_slot),
                "booked_slot_iso": strip_tz_suffix(best_slot),
            } if best and best_slot else None,
            "recommendation": (
                f"I was able to book at {best.provider_name} for {format_for_user(best_slot)}. "
                "This was the earliest available slot."
                if best and best_slot else
                "Unfortunately, none of the providers had availability in your preferred time range. "
                "Would you like to try different times?"
            ),
            "next_action": (
                "Use confirm_booking to finalize the best match and add to calendar"
                if best else "Expand time range or try different providers"
            ),
        }

    async def confirm_booking(self, params: Params) -> Dict[str, Any]:
        provider_id = params["provider_id"]
        provider_name = params.get("provider_name") or provider_id
        service_type = params.get("service_type") or "appointment"
        notes = params.get("notes")
        start = strip_tz_suffix(params["booked_slot"])
        end = add_hours_local(start, APPOINTMENT_LENGTH_HOURS)

        provider = self.lookup.get_provider(provider_id)
        address = params.get("location") or (provider.address if provider else None) or "Address TBD"

        event_id = self.calendar.create_calendar_event(
            title=f"{service_type} Appointment - {provider_name}",
            start=start,
            end=end,
            location=address,
            description=(
                f"Booked by Alfred.\n\nProvider: {provider_name}\n"
                f"Phone: {provider.phone if provider else 'N/A'}\n\n{notes or ''}"
            ),
        )

        last = self.store.last()
        if last is not None:
            self.store.update(
                last.id,
                booked_provider_id=provider_id,
                booked_slot=start,
                intent=last.intent.model_copy(update={"status": IntentStatus.BOOKED}),
            )

        return {
            "booking_confirmed": True,
            "details": {
                "provider_name": provider_name,
                "provider_id": provider_id,
                "provider_phone": provider.phone if provider else None,
                "provider_address": address,
                "appointment_time": format_for_user(start),
                "appointment_time_iso": start,
                "service_type": service_type,
                "notes": notes,
            },
            "calendar": {"added": True, "event_id": event_id},
            "confirmation_message": (
                f"Your {service_type} appointment at {provider_name} is confirmed for "
                f"{format_for_user(start)}. I've added it to your calendar."
            ),
        }
