from __future__ import annotations
import asyncio
import json
from typing import Optional

from .graph import build_graph
from .handlers import BookingTools
from .logs import configure_logging
from .timeutil import today_and_tomorrow


def main(
    mode: str = "single",
    service_type: str = "dentist",
    preferred_date: Optional[str] = None,
    preferred_time: str = "10:00",
    location: str = "Boston",
    time_scale: Optional[float] = None,
) -> dict:
    configure_logging()
    app = build_graph(BookingTools(time_scale=time_scale))

    init_state = {
        "service_type": service_type,
        "preferred_date": preferred_date or today_and_tomorrow()[1].isoformat(),
        "preferred_time": preferred_time,
        "location": location,
        "mode": mode,
        "transcript": [],
    }

    print("=" * 60)
    print("🚀 Alfred - Starting Booking Workflow")
    print("=" * 60)
    print(f"📋 Workflow sequence: search → {mode}_call → confirm → done")
    print("=" * 60)

    final_state = asyncio.run(app.ainvoke(init_state))

    print("\n" + "=" * 60)
    print("✅ Workflow Complete - Final Result:")
    print("=" * 60)

    result = final_state.get("result", {}) if isinstance(final_state, dict) else {}
    for line in result.get("transcript", []):
        print(line)
    print(json.dumps({k: v for k, v in result.items() if k != "transcript"}, indent=2))
    return result
