"""
Candidate narrowing for business search.

``apply_filters`` is pure: it never mutates its inputs and keeps the relative
order of the businesses it returns. Criteria combine with AND; a criterion left
as ``None`` is not evaluated at all.
"""

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from . import config
from .constants import (
    F_CATEGORIES,
    F_DESCRIPTION,
    F_NAME,
    F_OPEN_NOW,
    F_SPONSORED,
    F_TAGS,
    F_VERIFIED,
    MATCH_EXACT,
)
from .geo import distance_to
from .utils import price_level, rating_overall

Range = tuple[float, float]


@dataclass(frozen=True)
class FilterCriteria:
    keywords: Optional[str] = None
    rating_range: Optional[Range] = None
    distance_range: Optional[Range] = None
    price_range: Optional[Range] = None
    categories: Optional[tuple[str, ...]] = None
    open_now: Optional[bool] = None
    verified: Optional[bool] = None
    sponsored: Optional[bool] = None
    category_match: str = config.CATEGORY_MATCH_MODE


def _strings(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v]


def searchable_text(business: Mapping) -> str:
    parts = [
        business.get(F_NAME) or "",
        business.get(F_DESCRIPTION) or "",
        " ".join(_strings(business.get(F_CATEGORIES))),
        " ".join(_strings(business.get(F_TAGS))),
    ]
    return " ".join(p for p in parts if p).lower()


def _in_range(value: Optional[float], bounds: Range) -> bool:
    if value is None:
        return False
    low, high = bounds
    return low <= value <= high


def category_matches(requested: Sequence[str], own: Sequence[str], mode: str) -> bool:
    """True when any requested category matches any of the business's categories.

    ``substring`` mode matches when either string contains the other, so
    "Salon" and "Hair Salon" match in both directions.
    """
    wanted = [c.lower() for c in requested if c]
    have = [c.lower() for c in own if c]
    if mode == MATCH_EXACT:
        return any(w == h for w in wanted for h in have)
    return any(w in h or h in w for w in wanted for h in have)


def _flag_equals(business: Mapping, field: str, expected: bool) -> bool:
    value = business.get(field)
    if not isinstance(value, bool):
        return False
    return value is expected


def matches(business: Mapping, criteria: FilterCriteria, user_location: Optional[Mapping] = None) -> bool:
    if criteria.keywords:
        if criteria.keywords.lower() not in searchable_text(business):
            return False

    if criteria.rating_range is not None:
        if not _in_range(rating_overall(business), criteria.rating_range):
            return False

    # Distance needs a caller location; without one the criterion is skipped.
    if criteria.distance_range is not None and user_location is not None:
        if not _in_range(distance_to(user_location, business), criteria.distance_range):
            return False

    if criteria.price_range is not None:
        if not _in_range(price_level(business), criteria.price_range):
            return False

    if criteria.categories:
        own = _strings(business.get(F_CATEGORIES))
        if not category_matches(criteria.categories, own, criteria.category_match):
            return False

    for field, expected in (
        (F_OPEN_NOW, criteria.open_now),
        (F_VERIFIED, criteria.verified),
        (F_SPONSORED, criteria.sponsored),
    ):
        if expected is not None and not _flag_equals(business, field, expected):
            return False

    return True


def apply_filters(
    candidates: Sequence[Mapping],
    criteria: FilterCriteria,
    user_location: Optional[Mapping] = None,
) -> list:
    """Return the candidates satisfying every set criterion, in input order."""
    return [b for b in candidates if matches(b, criteria, user_location)]
