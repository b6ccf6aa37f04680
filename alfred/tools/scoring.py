from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, TypeVar

from ..schema import AppointmentIntent, Provider, RankedProvider
from ..timeutil import parse_local

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RankingWeights:
    rating_multiplier: float = 10.0      # points per star
    max_distance_score: float = 30.0     # points for a provider at 0 miles
    distance_decay_per_mile: float = 5.0
    slot_match_bonus: float = 20.0       # any slot inside the preferred window


DEFAULT_WEIGHTS = RankingWeights()


def matching_slots(provider: Provider, intent: AppointmentIntent) -> List[str]:
    """All of the provider's slots inside the intent window (inclusive)."""
    start = parse_local(intent.preferred_time_range.start)
    end = parse_local(intent.preferred_time_range.end)
    return [s for s in provider.available_slots if start <= parse_local(s) <= end]


def score_provider(
    provider: Provider,
    intent: AppointmentIntent,
    weights: RankingWeights = DEFAULT_WEIGHTS,
) -> RankedProvider:
    # Rating: 10 pts per star by default (max 50)
    total = provider.rating * weights.rating_multiplier

    # Distance decays linearly and never goes negative
    total += max(0.0, weights.max_distance_score - provider.distance_miles * weights.distance_decay_per_mile)

    slots = matching_slots(provider, intent)
    if slots:
        total += weights.slot_match_bonus

    base = provider.model_dump(exclude={"final_score", "matching_slots"})
    return RankedProvider(**base, final_score=total, matching_slots=slots)


def rank_providers(
    providers: Sequence[Provider],
    intent: AppointmentIntent,
    weights: RankingWeights = DEFAULT_WEIGHTS,
) -> List[RankedProvider]:
    """Score every provider and sort by descending score.

    The sort is stable: providers with equal scores keep their input order,
    so the ranking is deterministic for a deterministic input.
    """
    scored = [score_provider(p, intent, weights) for p in providers]
    ranked = sorted(scored, key=lambda r: r.final_score, reverse=True)
    logger.debug("rank_providers: ranked=%d", len(ranked))
    return ranked


def batch_providers(providers: Sequence[T], batch_size: int = 3) -> List[List[T]]:
    """Consecutive groups of ``batch_size`` providers, input order preserved."""
    size = max(1, batch_size)
    return [list(providers[i:i + size]) for i in range(0, len(providers), size)]


def top_providers(
    providers: Sequence[Provider],
    intent: AppointmentIntent,
    limit: int = 5,
) -> List[RankedProvider]:
    return rank_providers(providers, intent)[:limit]


def rank_providers_by_category(
    providers: Sequence[Provider],
    intent: AppointmentIntent,
    category: str,
) -> List[RankedProvider]:
    """Rank only the providers in ``category``."""
    return rank_providers([p for p in providers if p.category == category], intent)
