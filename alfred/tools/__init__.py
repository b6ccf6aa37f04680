"""
Tools package for Alfred
"""

from .providers import (
    ChainedLookup,
    DirectoryLookup,
    SyntheticProviderLookup,
    default_lookup,
    load_providers,
    search_providers,
)

from .calendar import DemoCalendar

from .scoring import (
    RankingWeights,
    batch_providers,
    rank_providers,
    rank_providers_by_category,
    score_provider,
    top_providers,
)

__all__ = [
    "ChainedLookup",
    "DirectoryLookup",
    "SyntheticProviderLookup",
    "default_lookup",
    "load_providers",
    "search_providers",
    "DemoCalendar",
    "RankingWeights",
    "batch_providers",
    "rank_providers",
    "rank_providers_by_category",
    "score_provider",
    "top_providers",
]
