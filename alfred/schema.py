"""Data models shared by ranking, negotiation and the swarm orchestrator.

All timestamps are local-time strings without a UTC offset
(e.g. ``"2026-02-10T14:00:00"``). See :mod:`alfred.timeutil`.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .timeutil import parse_local

KNOWN_CATEGORIES = ("dentist", "hairdresser", "car_repair", "physical_therapy")


class IntentStatus(str, Enum):
    SEARCHING = "searching"
    CALLING = "calling"
    BOOKED = "booked"
    FAILED = "failed"


class CallState(str, Enum):
    PENDING = "pending"
    CALLING = "calling"
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class ProviderMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    accepts_insurance: Optional[bool] = None
    parking: Optional[str] = None
    specialty: Optional[str] = None
    waitlist: Optional[bool] = None
    same_day: Optional[bool] = None
    notes: Optional[str] = None


class Provider(BaseModel):
    """A bookable entity from the directory (or synthesized on demand)."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    phone: str = ""
    # One of KNOWN_CATEGORIES, or free text for synthesized providers
    category: str
    rating: float = Field(ge=0.0, le=5.0)
    address: str = ""
    distance_miles: float = Field(default=0.0, ge=0.0)
    available_slots: List[str] = Field(default_factory=list)
    metadata: Optional[ProviderMetadata] = None

    @field_validator("available_slots")
    @classmethod
    def slots_must_parse(cls, v: List[str]) -> List[str]:
        for slot in v:
            try:
                parse_local(slot)
            except ValueError:
                msg = f"Unparseable slot {slot!r}; expected YYYY-MM-DDTHH:MM:SS"
                raise ValueError(msg) from None
        return v


class TimeRange(BaseModel):
    start: str
    end: str


class AppointmentIntent(BaseModel):
    user_id: str = "default_user"
    service_type: str
    user_location: Optional[str] = None
    preferred_time_range: TimeRange
    max_distance_miles: float = 10.0
    status: IntentStatus = IntentStatus.SEARCHING


class RankedProvider(Provider):
    final_score: float
    matching_slots: List[str] = Field(default_factory=list)


class TranscriptLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str  # "receptionist" | "agent"
    message: str
    delay_ms: int


class CallResult(BaseModel):
    """Outcome of one simulated negotiation."""

    model_config = ConfigDict(frozen=True)

    success: bool
    provider_id: str
    provider_name: str
    message: str
    booked_slot: Optional[str] = None
    alternative_slots: Optional[List[str]] = None
    wait_time_ms: int
    transcript: List[TranscriptLine] = Field(default_factory=list)


class CallStatus(BaseModel):
    """Per-provider bookkeeping during one swarm run (mutable)."""

    provider_id: str
    provider_name: str
    status: CallState = CallState.PENDING
    started_at: Optional[int] = None
    completed_at: Optional[int] = None
    result: Optional[CallResult] = None


class SwarmResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_providers: int
    successful_bookings: List[CallStatus]
    # failed + timeout
    failed_calls: List[CallStatus]
    cancelled_calls: List[CallStatus]
    best_match: Optional[CallStatus] = None
    total_duration_ms: int
    call_statuses: List[CallStatus]
