"""
Alfred - appointment booking agent that negotiates with providers in parallel
"""

__version__ = "0.1.0"

from .config import Settings, settings
from .schema import AppointmentIntent, CallResult, CallStatus, Provider, RankedProvider, SwarmResult
from .state import BookingState

__all__ = [
    "Settings",
    "settings",
    "AppointmentIntent",
    "CallResult",
    "CallStatus",
    "Provider",
    "RankedProvider",
    "SwarmResult",
    "BookingState",
]
