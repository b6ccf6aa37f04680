"""Google Places API integration.

This module searches for bookable businesses with the Places text search
and maps them onto directory ``Provider`` records. Places does not expose
appointment availability, so each result gets two canned slots derived from
the user's preferred date and time.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import googlemaps

from ..config import settings
from ..schema import Provider, ProviderMetadata
from ..timeutil import add_hours_local

logger = logging.getLogger(__name__)


def get_places_client(api_key: Optional[str] = None, timeout: Optional[float] = None) -> googlemaps.Client:
    """Get authenticated Google Maps/Places client.

    Returns:
        Authenticated googlemaps.Client instance.

    Raises:
        ValueError: If GOOGLE_MAPS_API_KEY is not set.
    """
    key = api_key or settings.google_maps_api_key
    if not key:
        raise ValueError(
            "Missing GOOGLE_MAPS_API_KEY environment variable.\n"
            "Get your API key from: https://console.cloud.google.com/google/maps-apis"
        )
    return googlemaps.Client(key=key, timeout=timeout or settings.places_timeout_s)


def place_to_provider(place: Dict[str, Any], service_type: str, preferred_date: str, preferred_time: str) -> Provider:
    """Map one Places result onto a ``Provider``.

    Slots: one hour after the preferred time, and 10:00 the next day.
    """
    start = f"{preferred_date}T{preferred_time}:00"
    next_day = add_hours_local(f"{preferred_date}T12:00:00", 24).split("T")[0]
    return Provider(
        id=place["place_id"],
        name=place.get("name", "Unknown"),
        phone=place.get("formatted_phone_number") or "+1-555-000-0000",
        category=service_type,
        rating=float(place.get("rating") or 0.0),
        address=place.get("formatted_address", ""),
        distance_miles=1.0,
        available_slots=[add_hours_local(start, 1), f"{next_day}T10:00:00"],
        metadata=ProviderMetadata(
            notes=f"Found via Google Maps: {place.get('user_ratings_total', 0)} reviews",
        ),
    )


def search_places(
    service_type: str,
    location: str,
    preferred_date: str,
    preferred_time: str,
    max_results: int = 10,
    client: Optional[googlemaps.Client] = None,
) -> List[Provider]:
    """Search for providers using the Google Places text search.

    Args:
        service_type: Free-text service (e.g. "dentist", "bowling alley")
        location: User location as an address or city name
        preferred_date: "YYYY-MM-DD" used to build the canned slots
        preferred_time: "HH:MM" used to build the canned slots
        max_results: Maximum number of results to return
        client: Optional pre-built client (tests inject a fake)

    Returns:
        List of providers; empty if Places is misconfigured, times out or
        returns nothing. Errors are logged, never raised.
    """
    try:
        client = client or get_places_client()
        response = client.places(query=f"{service_type} near {location}")
    except ValueError as e:
        logger.warning("Google Places API configuration error: %s", e)
        return []
    except Exception as e:
        logger.error("Google Places API error: %s", e)
        return []

    status = response.get("status")
    if status == "REQUEST_DENIED":
        logger.error("Google Places request denied. Check that the Places API is enabled.")
        return []
    if status != "OK":
        logger.info("Google Places returned status=%s for %r", status, service_type)
        return []

    providers = []
    for place in response.get("results", [])[:max_results]:
        if not place.get("place_id"):
            continue
        providers.append(place_to_provider(place, service_type, preferred_date, preferred_time))
    logger.info("search_places: service=%s location=%s found=%d", service_type, location, len(providers))
    return providers
