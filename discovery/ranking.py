"""
Ordering strategies for business search results.

Each strategy takes ``(businesses, user_location)`` and returns a new list.
Strategies are looked up in ``SORT_STRATEGIES``; unknown keys fall back to
relevance. Python's sort is stable, so businesses that tie on every key keep
their input order and re-sorting a sorted list is a no-op.
"""

import logging
import math
import unicodedata
from typing import Callable, Mapping, Optional, Sequence

from .constants import (
    F_NAME,
    F_SPONSORED,
    SORT_DISTANCE,
    SORT_NAME,
    SORT_NEWEST,
    SORT_OLDEST,
    SORT_PRICE,
    SORT_RATING,
    SORT_RELEVANCE,
    SORT_REVIEWS,
)
from .geo import distance_to
from .utils import created_at, price_level, rating_count, rating_overall

logger = logging.getLogger(__name__)

Strategy = Callable[[Sequence[Mapping], Optional[Mapping]], list]

SORT_LABELS = {
    SORT_RELEVANCE: "Relevance",
    SORT_RATING: "Highest Rated",
    SORT_DISTANCE: "Nearest",
    SORT_REVIEWS: "Most Reviews",
    SORT_NAME: "Name A-Z",
    SORT_PRICE: "Price (Low to High)",
    SORT_NEWEST: "Newest First",
    SORT_OLDEST: "Oldest First",
}


def _overall(b: Mapping) -> float:
    return rating_overall(b) or 0.0


def _count(b: Mapping) -> float:
    return rating_count(b) or 0.0


def _name_key(b: Mapping) -> str:
    """Case- and accent-insensitive collation key, so "Éclair" sorts with "eclair"."""
    name = b.get(F_NAME)
    if not isinstance(name, str):
        return ""
    decomposed = unicodedata.normalize("NFKD", name)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def by_relevance(businesses, user_location=None):
    return sorted(businesses, key=lambda b: (b.get(F_SPONSORED) is not True, -_overall(b)))


def by_rating(businesses, user_location=None):
    return sorted(businesses, key=lambda b: (-_overall(b), -_count(b)))


def by_distance(businesses, user_location=None):
    if user_location is None:
        return by_relevance(businesses)

    def key(b):
        miles = distance_to(user_location, b)
        return math.inf if miles is None else miles

    return sorted(businesses, key=key)


def by_reviews(businesses, user_location=None):
    return sorted(businesses, key=lambda b: (-_count(b), -_overall(b)))


def by_name(businesses, user_location=None):
    return sorted(businesses, key=_name_key)


def by_price(businesses, user_location=None):
    return sorted(businesses, key=lambda b: price_level(b) or 0.0)


def by_newest(businesses, user_location=None):
    return sorted(businesses, key=created_at, reverse=True)


def by_oldest(businesses, user_location=None):
    return sorted(businesses, key=created_at)


SORT_STRATEGIES: dict[str, Strategy] = {
    SORT_RELEVANCE: by_relevance,
    SORT_RATING: by_rating,
    SORT_DISTANCE: by_distance,
    SORT_REVIEWS: by_reviews,
    SORT_NAME: by_name,
    SORT_PRICE: by_price,
    SORT_NEWEST: by_newest,
    SORT_OLDEST: by_oldest,
}


def register_strategy(sort_key: str, strategy: Strategy) -> None:
    """Add or replace the strategy used for ``sort_key``.

    The registry is shared by every request, so call this at startup only.
    """
    SORT_STRATEGIES[sort_key] = strategy


def resolve_strategy(sort_key: Optional[str]) -> Strategy:
    strategy = SORT_STRATEGIES.get(sort_key or SORT_RELEVANCE)
    if strategy is None:
        logger.debug("Unknown sort key %r, using relevance", sort_key)
        return SORT_STRATEGIES[SORT_RELEVANCE]
    return strategy


def sort_businesses(
    businesses: Sequence[Mapping],
    sort_key: Optional[str] = SORT_RELEVANCE,
    user_location: Optional[Mapping] = None,
) -> list:
    """Return a new list of ``businesses`` ordered by ``sort_key``."""
    return resolve_strategy(sort_key)(list(businesses), user_location)
