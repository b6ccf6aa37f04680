"""Provider directory, lookup and search.

This module owns where a ``Provider`` comes from. The negotiation core only
sees the ``ProviderLookup`` protocol; concrete lookups are chained so that
the JSON directory is tried first, then providers discovered by an earlier
search (e.g. Google Places results), then synthetic providers generated
from ``synth_<category>_<variant>`` ids.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from ..config import settings
from ..schema import Provider, ProviderMetadata
from ..timeutil import add_hours_local, today_and_tomorrow

logger = logging.getLogger(__name__)

SYNTHETIC_PREFIX = "synth_"

# Common spoken terms -> directory category
CATEGORY_ALIASES: Dict[str, str] = {
    "dentist": "dentist",
    "dental": "dentist",
    "teeth": "dentist",
    "hairdresser": "hairdresser",
    "hair": "hairdresser",
    "salon": "hairdresser",
    "haircut": "hairdresser",
    "mechanic": "car_repair",
    "car": "car_repair",
    "auto": "car_repair",
    "car repair": "car_repair",
    "physical therapy": "physical_therapy",
    "physio": "physical_therapy",
    "pt": "physical_therapy",
}


class ProviderLookup(Protocol):
    def get_provider(self, provider_id: str) -> Optional[Provider]:
        ...


def load_providers(path: Optional[str] = None) -> List[Provider]:
    """Load all providers from the JSON directory.

    Reads the directory file specified in settings.directory_path (or
    ``path``) and returns the complete list of providers.

    Example:
        >>> providers = load_providers()
        >>> print(providers[0].name)
        'Back Bay Family Dentistry'
    """
    with open(path or settings.directory_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return [Provider.model_validate(p) for p in data.get("providers", [])]


@lru_cache(maxsize=4)
def _cached_directory(path: str) -> Tuple[Provider, ...]:
    return tuple(load_providers(path))


class DirectoryLookup:
    """Read-only lookup over a fixed set of providers."""

    def __init__(self, providers: Optional[Iterable[Provider]] = None):
        if providers is None:
            providers = _cached_directory(settings.directory_path)
        self._by_id = {p.id: p for p in providers}

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        return self._by_id.get(provider_id)

    def all(self) -> List[Provider]:
        return list(self._by_id.values())


class CachedLookup:
    """Providers discovered at search time, registered so later calls find them."""

    def __init__(self):
        self._by_id: Dict[str, Provider] = {}

    def register(self, providers: Iterable[Provider]) -> None:
        for p in providers:
            self._by_id[p.id] = p

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        return self._by_id.get(provider_id)


def _title(category: str) -> str:
    return category[:1].upper() + category[1:]


class SyntheticProviderLookup:
    """Reconstructs a plausible provider from a ``synth_<category>_<variant>`` id.

    Variant ``01`` is "<Category> of Boston"; any other variant is
    "Elite <Category> Care". Both get three slots: today 10:00 and 14:30,
    tomorrow 09:00 (local dates in the user's timezone).
    """

    def __init__(self, tz_name: Optional[str] = None):
        self.tz_name = tz_name

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        if not provider_id.startswith(SYNTHETIC_PREFIX):
            return None
        rest = provider_id[len(SYNTHETIC_PREFIX):]
        category, _, variant = rest.rpartition("_")
        if not category:
            category, variant = rest or "service", "01"

        today, tomorrow = today_and_tomorrow(self.tz_name)
        first = variant == "01"
        return Provider(
            id=provider_id,
            name=f"{_title(category)} of Boston" if first else f"Elite {_title(category)} Care",
            category=category,
            phone="+1-617-555-9901" if first else "+1-617-555-9902",
            rating=4.7 if first else 4.9,
            address="100 Main St, Boston, MA" if first else "250 Common Ave, Boston, MA",
            distance_miles=0.5 if first else 1.2,
            available_slots=[
                f"{today.isoformat()}T10:00:00",
                f"{today.isoformat()}T14:30:00",
                f"{tomorrow.isoformat()}T09:00:00",
            ],
            metadata=ProviderMetadata(notes="Dynamically generated provider"),
        )


class ChainedLookup:
    """Tries each lookup in order and returns the first hit."""

    def __init__(self, lookups: Sequence[ProviderLookup]):
        self.lookups = list(lookups)

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        for lookup in self.lookups:
            provider = lookup.get_provider(provider_id)
            if provider is not None:
                return provider
        return None


def default_lookup(cache: Optional[CachedLookup] = None) -> ChainedLookup:
    """Directory, then search cache (if given), then synthetic generator."""
    chain: List[ProviderLookup] = [DirectoryLookup()]
    if cache is not None:
        chain.append(cache)
    chain.append(SyntheticProviderLookup())
    return ChainedLookup(chain)


def normalize_category(service_type: str) -> str:
    normalized = service_type.strip().lower()
    return CATEGORY_ALIASES.get(normalized, normalized)


def filter_directory(providers: Iterable[Provider], service_type: str) -> List[Provider]:
    """Directory providers whose category (or name) matches the service."""
    normalized = service_type.strip().lower()
    category = normalize_category(service_type)
    return [
        p for p in providers
        if p.category.lower() == category
        or p.category.lower().replace("_", " ") == normalized
        or normalized in p.name.lower()
    ]


def synthesize_providers(service_type: str, location: str, preferred_date: str, preferred_time: str) -> List[Provider]:
    """Two made-up providers so any service type can be searched."""
    normalized = service_type.strip().lower()
    title = _title(service_type.strip())
    hour = preferred_time.split(":")[0].zfill(2)
    base = f"{preferred_date}T{hour}:00:00"
    next_day = add_hours_local(f"{preferred_date}T12:00:00", 24).split("T")[0]
    return [
        Provider(
            id=f"{SYNTHETIC_PREFIX}{normalized}_01",
            name=f"{title} of {location}",
            phone="+1-617-555-9901",
            category=normalized,
            rating=4.7,
            address=f"100 Main St, {location}, MA",
            distance_miles=0.5,
            available_slots=[add_hours_local(base, 0.5), add_hours_local(base, 2)],
            metadata=ProviderMetadata(notes=f"Highly recommended for {service_type}"),
        ),
        Provider(
            id=f"{SYNTHETIC_PREFIX}{normalized}_02",
            name=f"Elite {title} Care",
            phone="+1-617-555-9902",
            category=normalized,
            rating=4.9,
            address=f"250 Common Ave, {location}, MA",
            distance_miles=1.2,
            available_slots=[add_hours_local(base, 1), f"{next_day}T10:00:00"],
            metadata=ProviderMetadata(notes=f"Top rated {service_type} in the area"),
        ),
    ]


def search_providers(
    service_type: str,
    preferred_date: str,
    preferred_time: str,
    location: str = "Boston",
    directory: Optional[Sequence[Provider]] = None,
    use_google_apis: Optional[bool] = None,
) -> Tuple[List[Provider], str]:
    """Find candidate providers for a service.

    Order of preference: Google Places (when enabled), the local directory
    filtered by category, and finally two synthetic providers.

    Returns:
        ``(providers, source)`` where source is "google", "local" or
        "synthetic".
    """
    if use_google_apis is None:
        use_google_apis = settings.use_google_apis

    if use_google_apis and location:
        from ..integrations.google_places import search_places

        found = search_places(service_type, location, preferred_date, preferred_time)
        if found:
            return found, "google"
        logger.info("search_providers: Places returned nothing, falling back to directory")

    pool = list(directory) if directory is not None else DirectoryLookup().all()
    matches = filter_directory(pool, service_type)
    if matches:
        return matches, "local"

    logger.info("search_providers: generating synthetic providers for %r", service_type)
    return synthesize_providers(service_type, location, preferred_date, preferred_time), "synthetic"
