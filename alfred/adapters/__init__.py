"""
Adapters package for Alfred
"""

from .receptionist_sim import (
    PERSONALITIES,
    Personality,
    ReceptionistSimulator,
    personality_for,
    render_call_transcript,
)

__all__ = [
    "PERSONALITIES",
    "Personality",
    "ReceptionistSimulator",
    "personality_for",
    "render_call_transcript",
]
