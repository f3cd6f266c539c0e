"""
Business search: store fetch -> filters -> ranking -> page slice.

Inputs are immutable values and the result is a fresh dict, so a call never
leaks state into the next one.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from . import config, crud
from .aggregates import summarize_ratings
from .constants import F_ID, F_LAT, F_LNG, SORT_RELEVANCE
from .errors import ValidationError
from .filters import FilterCriteria, apply_filters
from .ranking import sort_businesses
from .schemas import ANONYMOUS, Viewer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchParams:
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    sort: str = SORT_RELEVANCE
    page: int = 1
    limit: int = config.DEFAULT_PAGE_LIMIT
    user_lat: Optional[float] = None
    user_lng: Optional[float] = None

    def __post_init__(self):
        fields = {}
        if self.page < 1:
            fields["page"] = "Page must be at least 1"
        if not 1 <= self.limit <= config.MAX_PAGE_LIMIT:
            fields["limit"] = f"Limit must be between 1 and {config.MAX_PAGE_LIMIT}"
        if (self.user_lat is None) != (self.user_lng is None):
            fields["lat"] = "lat and lng must be given together"
        if fields:
            raise ValidationError("Invalid search parameters", fields=fields)

    @property
    def user_location(self) -> Optional[dict]:
        if self.user_lat is None or self.user_lng is None:
            return None
        return {F_LAT: self.user_lat, F_LNG: self.user_lng}


def paginate(items: list, page: int, limit: int) -> tuple[list, dict]:
    total = len(items)
    pages = math.ceil(total / limit)
    start = (page - 1) * limit
    return items[start:start + limit], {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }


def search_businesses(db: Session, params: SearchParams, viewer: Viewer = ANONYMOUS) -> dict:
    """Run one search request.

    Aggregates describe the approved reviews of every business that passed the
    filters, not only the ones on the returned page.

    Returns:
        dict: ``{"results", "aggregates", "pagination"}``.
    """
    candidates = crud.fetch_visible_businesses(db, viewer)
    location = params.user_location
    filtered = apply_filters(candidates, params.criteria, location)
    ranked = sort_businesses(filtered, params.sort, location)
    results, pagination = paginate(ranked, params.page, params.limit)

    histogram = crud.approved_rating_histogram(db, (b[F_ID] for b in filtered))
    logger.debug(
        "Search sort=%s page=%s: %s candidates, %s matched",
        params.sort, params.page, len(candidates), len(filtered),
    )
    return {
        "results": results,
        "aggregates": summarize_ratings(histogram),
        "pagination": pagination,
    }
