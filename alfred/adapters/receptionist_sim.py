"""Simulated receptionist phone call adapter.

This module simulates calling a provider's front desk to negotiate a
timeslot. Each call runs the same linear script (greeting, request, schedule
lookup, resolution); only the receptionist's personality changes, and that
is picked from the provider's rating via a lookup table.

Delays are simulated: every transcript line carries the delay it "took",
``wait_time_ms`` is their sum, and the coroutine sleeps for
``delay * time_scale`` so that callers can race it against a timeout.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from ..config import settings
from ..schema import CallResult, Provider, TranscriptLine
from ..timeutil import format_slot, local_hour, minutes_between, parse_local, strip_tz_suffix
from ..tools.providers import ProviderLookup

logger = logging.getLogger(__name__)

RECEPTIONIST = "receptionist"
AGENT = "agent"

GREETING_DELAY_MS = 500
REQUEST_DELAY_MS = 800
ANSWER_DELAY_MS = 1000
AGENT_REPLY_DELAY_MS = 500
CONFIRM_DELAY_MS = 800

SLOT_FLEXIBILITY_MINUTES = 60
AVAILABILITY_BOOST = 0.1
# Requests at or after 22:00 or at/before 07:xx are never honoured
AFTER_HOURS_START = 22
AFTER_HOURS_END = 7
# Offered alternatives must start between 08:xx and 18:xx
BUSINESS_HOURS = (8, 18)
FALLBACK_ALTERNATIVE_TIME = "10:00:00"


class RandomSource(Protocol):
    def random(self) -> float:
        ...


@dataclass(frozen=True)
class Personality:
    name: str
    think_time_ms: int
    availability_rate: float
    scripts: Dict[str, str]


PERSONALITIES: Dict[str, Personality] = {
    "friendly": Personality(
        name="friendly",
        think_time_ms=1200,
        availability_rate=0.8,
        scripts={
            "greeting": "Good morning! Thank you for calling {provider_name}, how can I help you today?",
            "request_response": "Of course! Let me check our schedule for {slot}...",
            "available": "Yes! We have that slot available. I'll book that for you right now.",
            "unavailable": "I'm sorry, that specific time is taken. Would {alternative} work for you instead?",
            "booked": "Perfect! You're all set for {slot}. We'll see you then!",
            "no_slots": "Unfortunately, we're fully booked for that day. Can I put you on our waitlist?",
        },
    ),
    "neutral": Personality(
        name="neutral",
        think_time_ms=1800,
        availability_rate=0.6,
        scripts={
            "greeting": "Hello, {provider_name}. How may I assist you?",
            "request_response": "One moment while I look at the calendar...",
            "available": "Yes, that time is open. Shall I book it?",
            "unavailable": "That slot is not available. We have {alternative} open.",
            "booked": "Confirmed for {slot}. Is there anything else?",
            "no_slots": "We don't have availability then. Would you like to try another day?",
        },
    ),
    "busy": Personality(
        name="busy",
        think_time_ms=2500,
        availability_rate=0.4,
        scripts={
            "greeting": "{provider_name}, please hold... Okay, what do you need?",
            "request_response": "Hold on... checking...",
            "available": "Yeah, we can do that. Booking now.",
            "unavailable": "No, that's taken. {alternative} is the only option.",
            "booked": "Done. {slot}. Anything else?",
            "no_slots": "Nothing available. Call back next week.",
        },
    ),
}

# (minimum rating, personality), checked top to bottom
PERSONALITY_TIERS: Tuple[Tuple[float, str], ...] = (
    (4.5, "friendly"),
    (4.0, "neutral"),
    (0.0, "busy"),
)


def personality_for(
    rating: float,
    tiers: Sequence[Tuple[float, str]] = PERSONALITY_TIERS,
    personalities: Dict[str, Personality] = PERSONALITIES,
) -> Personality:
    for threshold, name in tiers:
        if rating >= threshold:
            return personalities[name]
    return personalities[tiers[-1][1]]


def is_after_hours(slot: str) -> bool:
    hour = local_hour(slot)
    return hour >= AFTER_HOURS_START or hour <= AFTER_HOURS_END


def find_flexible_slot(provider: Provider, requested_slot: str) -> Optional[str]:
    """First provider slot within the flexibility window of the request."""
    for slot in provider.available_slots:
        if minutes_between(slot, requested_slot) <= SLOT_FLEXIBILITY_MINUTES:
            return slot
    return None


def business_hours_alternative(slot: str) -> str:
    """``slot`` itself if it starts in business hours, else 10:00 the same day."""
    clean = strip_tz_suffix(slot)
    if BUSINESS_HOURS[0] <= parse_local(clean).hour <= BUSINESS_HOURS[1]:
        return clean
    return f"{clean.split('T')[0]}T{FALLBACK_ALTERNATIVE_TIME}"


def _wait_time(transcript: List[TranscriptLine]) -> int:
    return sum(line.delay_ms for line in transcript)


class ReceptionistSimulator:
    """Runs one simulated negotiation per ``negotiate`` call.

    Args:
        lookup: Where providers are resolved from (directory, synthetic, ...).
        rng: Source of the availability draw. Anything with ``random()``;
             pass a seeded ``random.Random`` or a stub for repeatable runs.
        time_scale: Multiplier applied to delays when actually sleeping.
                    0 means "don't sleep, just yield to the event loop".
        personalities / tiers: Override the personality table.
    """

    def __init__(
        self,
        lookup: ProviderLookup,
        rng: Optional[RandomSource] = None,
        time_scale: Optional[float] = None,
        personalities: Optional[Dict[str, Personality]] = None,
        tiers: Sequence[Tuple[float, str]] = PERSONALITY_TIERS,
    ):
        self.lookup = lookup
        self.rng = rng or random.Random()
        self.time_scale = settings.sim_time_scale if time_scale is None else time_scale
        self.personalities = personalities or PERSONALITIES
        self.tiers = tiers

    async def _say(self, transcript: List[TranscriptLine], role: str, message: str, delay_ms: int) -> None:
        transcript.append(TranscriptLine(role=role, message=message, delay_ms=delay_ms))
        if self.time_scale > 0:
            await asyncio.sleep(delay_ms * self.time_scale / 1000.0)
        else:
            await asyncio.sleep(0)

    async def negotiate(
        self,
        provider_id: str,
        requested_slot: str,
        service_description: Optional[str] = None,
    ) -> CallResult:
        """Simulate the call. Never raises for domain conditions.

        Returns:
            CallResult with ``success`` set when the requested time (±60 min)
            was booked, otherwise with at most one business-hours
            alternative taken from the provider's first slot.
        """
        transcript: List[TranscriptLine] = []
        provider = self.lookup.get_provider(provider_id)

        if provider is None:
            logger.warning("negotiate: unknown provider_id=%s", provider_id)
            await self._say(transcript, RECEPTIONIST, "Unknown provider", GREETING_DELAY_MS)
            return CallResult(
                success=False,
                provider_id=provider_id,
                provider_name="Unknown",
                message="Provider not found",
                wait_time_ms=_wait_time(transcript),
                transcript=transcript,
            )

        personality = personality_for(provider.rating, self.tiers, self.personalities)
        scripts = personality.scripts

        try:
            requested_display = format_slot(requested_slot)
        except ValueError:
            logger.warning("negotiate: unparseable requested_slot=%r", requested_slot)
            requested_slot, requested_display = "", requested_slot

        # 1. Greeting
        await self._say(transcript, RECEPTIONIST, scripts["greeting"].format(provider_name=provider.name), GREETING_DELAY_MS)

        # 2. Request
        await self._say(
            transcript,
            AGENT,
            f"Hi, I'm calling to book a {service_description or 'appointment'} for {requested_display}.",
            REQUEST_DELAY_MS,
        )

        # 3. Lookup
        await self._say(
            transcript,
            RECEPTIONIST,
            scripts["request_response"].format(slot=requested_display),
            personality.think_time_ms,
        )

        # 4. Resolution
        matched = None
        if requested_slot and not is_after_hours(requested_slot):
            matched = find_flexible_slot(provider, requested_slot)

        available = matched is not None and self.rng.random() < personality.availability_rate + AVAILABILITY_BOOST

        if available:
            booked = strip_tz_suffix(matched)
            booked_line = scripts["booked"].format(slot=format_slot(booked))
            await self._say(transcript, RECEPTIONIST, scripts["available"], ANSWER_DELAY_MS)
            await self._say(transcript, AGENT, "That sounds perfect. Please confirm the booking.", AGENT_REPLY_DELAY_MS)
            await self._say(transcript, RECEPTIONIST, booked_line, CONFIRM_DELAY_MS)
            logger.info("negotiate: %s booked %s (%s)", provider.id, booked, personality.name)
            return CallResult(
                success=True,
                provider_id=provider.id,
                provider_name=provider.name,
                message=booked_line,
                booked_slot=booked,
                wait_time_ms=_wait_time(transcript),
                transcript=transcript,
            )

        if provider.available_slots:
            alternative = business_hours_alternative(provider.available_slots[0])
            offer = scripts["unavailable"].format(alternative=format_slot(alternative))
            await self._say(transcript, RECEPTIONIST, offer, ANSWER_DELAY_MS)
            await self._say(transcript, AGENT, "Let me check with the user and get back to you.", AGENT_REPLY_DELAY_MS)
            logger.info("negotiate: %s unavailable, offered %s", provider.id, alternative)
            return CallResult(
                success=False,
                provider_id=provider.id,
                provider_name=provider.name,
                message=offer,
                alternative_slots=[alternative],
                wait_time_ms=_wait_time(transcript),
                transcript=transcript,
            )

        await self._say(transcript, RECEPTIONIST, scripts["no_slots"], ANSWER_DELAY_MS)
        logger.info("negotiate: %s has no slots", provider.id)
        return CallResult(
            success=False,
            provider_id=provider.id,
            provider_name=provider.name,
            message=scripts["no_slots"],
            wait_time_ms=_wait_time(transcript),
            transcript=transcript,
        )


def render_call_transcript(provider: Provider, result: CallResult) -> List[str]:
    """Plain-text transcript for logs and the CLI.

    Example:
        >>> lines = render_call_transcript(provider, result)
        >>> print(lines[0])
        [CALL] Calling Back Bay Family Dentistry...
    """
    lines = [f"[CALL] Calling {provider.name}..."]
    for turn in result.transcript:
        tag = "[RECEP]" if turn.role == RECEPTIONIST else "[AGENT]"
        lines.append(f"{tag} {turn.message}")

    if result.success:
        lines.append("[CALL] Call completed - appointment confirmed")
    elif result.alternative_slots:
        lines.append("[CALL] Call ended - alternative times offered")
    else:
        lines.append("[CALL] Call ended - no availability")
    return lines
