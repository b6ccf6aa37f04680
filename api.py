from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from alfred.handlers import BookingTools
from alfred.logs import configure_logging
from alfred.schema import AppointmentIntent, TimeRange
from alfred.timeutil import add_hours_local, normalize_hhmm
from alfred.tools.providers import DirectoryLookup, filter_directory
from alfred.tools.scoring import rank_providers

configure_logging()
logger = logging.getLogger("alfred.api")

app = FastAPI(title="Alfred API", version="0.1.0")

_tools: Optional[BookingTools] = None


def get_tools() -> BookingTools:
    global _tools
    if _tools is None:
        _tools = BookingTools()
    return _tools


class ToolCallRequest(BaseModel):
    tool_name: Optional[str] = None
    tool_call_id: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ToolCallResponse(BaseModel):
    tool_call_id: Optional[str] = None
    result: str = Field(description="JSON-encoded tool result")


class BookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_type: Optional[str] = Field(default=None, alias="serviceType")
    preferred_date: Optional[str] = Field(default=None, alias="preferredDate")
    preferred_time: Optional[str] = Field(default=None, alias="preferredTime")
    user_location: Optional[str] = Field(default=None, alias="userLocation")
    max_distance: Optional[float] = Field(default=None, alias="maxDistance")
    user_id: str = Field(default="default_user", alias="userId")


class SwarmRequest(BaseModel):
    service_type: str = Field(default="dentist")
    preferred_date: Optional[str] = Field(default=None)
    preferred_time: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default="Boston")
    service_description: Optional[str] = Field(default=None)
    max_concurrent_calls: Optional[int] = Field(default=None, ge=1)
    stop_on_first_success: Optional[bool] = Field(default=None)
    timeout_ms: Optional[int] = Field(default=None, ge=1)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/ping")
def ping():
    return {"ok": True}


@app.post("/tools", response_model=ToolCallResponse)
async def tool_call(req: ToolCallRequest, tools: BookingTools = Depends(get_tools)) -> ToolCallResponse:
    """Webhook for the voice agent's tool calls."""
    logger.info("Tool call: %s (%s)", req.tool_name, req.tool_call_id)
    if not req.tool_name:
        raise HTTPException(status_code=400, detail="Missing tool_name")

    result = await tools.dispatch(req.tool_name, req.parameters)
    return ToolCallResponse(tool_call_id=req.tool_call_id, result=json.dumps(result))


@app.post("/booking")
def booking(req: BookingRequest, tools: BookingTools = Depends(get_tools)) -> Dict[str, Any]:
    """Rank directory providers for a one-hour window, no calls placed."""
    if not req.service_type or not req.preferred_date or not req.preferred_time:
        raise HTTPException(
            status_code=400,
            detail="Missing core parameters: serviceType, preferredDate, or preferredTime",
        )

    start = f"{req.preferred_date}T{normalize_hhmm(req.preferred_time)}:00"
    intent = AppointmentIntent(
        user_id=req.user_id,
        service_type=req.service_type,
        user_location=req.user_location,
        preferred_time_range=TimeRange(start=start, end=add_hours_local(start, 1)),
        max_distance_miles=req.max_distance or 10,
    )

    providers = tools.directory if tools.directory is not None else DirectoryLookup().all()
    filtered = filter_directory(providers, req.service_type)
    ranked = rank_providers(filtered or providers, intent)

    return {
        "message": f"I've analyzed providers in {req.user_location or 'your area'}. Found {len(ranked)} matches.",
        "top_matches": [
            {
                "id": p.id,
                "name": p.name,
                "phone": p.phone,
                "rating": p.rating,
                "distance": p.distance_miles,
                "score": p.final_score,
            }
            for p in ranked[:3]
        ],
        "intent": intent.model_dump(mode="json"),
    }


@app.post("/swarm")
async def swarm(req: SwarmRequest, tools: BookingTools = Depends(get_tools)) -> Dict[str, Any]:
    """Search, then call the top matches concurrently."""
    search = await tools.dispatch("search_providers", {
        "service_type": req.service_type,
        "preferred_date": req.preferred_date,
        "preferred_time": req.preferred_time,
        "location": req.location,
    })
    if search.get("error"):
        raise HTTPException(status_code=400, detail=search["error"])

    result = await tools.dispatch("swarm_call_providers", {
        "service_description": req.service_description,
        "max_concurrent_calls": req.max_concurrent_calls,
        "stop_on_first_success": req.stop_on_first_success,
        "timeout_ms": req.timeout_ms,
    })
    return {"search": search, "swarm": result}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
