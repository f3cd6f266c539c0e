"""
Derived statistics over approved reviews.

Recomputes always start from a full read of the current approved rows, never
from a cached count, so they are safe to repeat and to run concurrently: the
last writer writes a value computed from fresh state.
"""

import logging
from typing import Callable, Mapping, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import config, crud
from .constants import (
    LEVEL_ADVANCED,
    LEVEL_BEGINNER,
    LEVEL_EXPERT,
    LEVEL_INTERMEDIATE,
    RATING_MAX,
    RATING_MIN,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (level, min approved reviews, min helpful votes), highest bar first
LEVEL_THRESHOLDS = (
    (LEVEL_EXPERT, 50, 100),
    (LEVEL_ADVANCED, 20, 50),
    (LEVEL_INTERMEDIATE, 5, 0),
)


def mean_rating(ratings) -> tuple[float, int]:
    """(average rounded to 2 places, count); (0.0, 0) for no ratings."""
    ratings = list(ratings)
    if not ratings:
        return 0.0, 0
    return round(sum(ratings) / len(ratings), 2), len(ratings)


def reviewer_level(total_approved_reviews: int, helpful_votes_received: int) -> str:
    for level, min_reviews, min_helpful in LEVEL_THRESHOLDS:
        if total_approved_reviews >= min_reviews and helpful_votes_received >= min_helpful:
            return level
    return LEVEL_BEGINNER


def recompute_business_rating(db: Session, business_id: str) -> tuple[float, int]:
    """Rewrite a business's rating aggregate from its approved reviews.

    Both columns are written by one UPDATE; on failure the transaction is
    rolled back and the error propagates, leaving the previous pair intact.
    """
    try:
        overall, count = mean_rating(crud.approved_ratings(db, business_id))
        crud.write_business_rating(db, business_id, overall, count)
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.debug("Business %s rating recomputed: overall=%s count=%s", business_id, overall, count)
    return overall, count


def recompute_reviewer_level(db: Session, author_id: str) -> str:
    """Rewrite a reviewer's counts and level from their approved reviews."""
    try:
        helpful_counts = crud.approved_helpful_counts(db, author_id)
        total = len(helpful_counts)
        helpful = sum(helpful_counts)
        level = reviewer_level(total, helpful)
        crud.upsert_reviewer_profile(db, author_id, total, helpful, level)
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.debug("Reviewer %s level recomputed: %s (%s reviews, %s helpful)", author_id, level, total, helpful)
    return level


def with_retries(fn: Callable[[], T], attempts: int = config.RECOMPUTE_ATTEMPTS, label: str = "recompute"):
    """Run an idempotent recompute, retrying database errors.

    Returns the result, or None once every attempt failed (the failure is logged,
    not raised).
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except SQLAlchemyError as e:
            if attempt < attempts:
                logger.warning("%s failed (attempt %s/%s), retrying: %s", label, attempt, attempts, e)
            else:
                logger.error("%s failed after %s attempts: %s", label, attempts, e)
    return None


def summarize_ratings(histogram: Mapping[int, int]) -> dict:
    """Response aggregates from a ``{star: count}`` histogram.

    Stars outside 1..5 are ignored. The average is weighted by count and
    rounded to 2 places; 0 when there are no reviews.
    """
    distribution = {star: int(histogram.get(star, 0)) for star in range(RATING_MIN, RATING_MAX + 1)}
    total = sum(distribution.values())
    average = round(sum(star * n for star, n in distribution.items()) / total, 2) if total else 0
    return {
        "ratingDistribution": distribution,
        "averageRating": average,
        "totalReviews": total,
    }
