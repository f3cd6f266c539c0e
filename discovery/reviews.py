"""
Review submission and the follow-up writes it triggers.

``submit_review`` checks, in order: the business is published, the author does
not own it, the author has not reviewed it yet, and the payload is within
bounds. The first failing check is the one reported.
"""

import logging
import uuid
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import crud
from .aggregates import recompute_business_rating, recompute_reviewer_level, with_retries
from .constants import (
    BUSINESS_PUBLISHED,
    MAX_PHOTOS,
    RATING_MAX,
    RATING_MIN,
    REVIEW_STATUSES,
    TEXT_MAX_LENGTH,
    TEXT_MIN_LENGTH,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
)
from .database import session_scope
from .errors import (
    BusinessNotAvailable,
    BusinessNotFound,
    DuplicateReview,
    DuplicateVote,
    ReviewNotFound,
    SelfReviewForbidden,
    SelfVoteForbidden,
    ValidationError,
)
from .models import Review
from .moderation import ModerationGate
from .schemas import ReviewCreate

logger = logging.getLogger(__name__)

Defer = Callable[..., None]


def validate_payload(payload: ReviewCreate) -> None:
    """Raise ValidationError listing every out-of-bounds field."""
    fields = {}
    if isinstance(payload.rating, bool) or not RATING_MIN <= payload.rating <= RATING_MAX:
        fields["rating"] = f"Rating must be between {RATING_MIN} and {RATING_MAX}"
    if not TITLE_MIN_LENGTH <= len(payload.title) <= TITLE_MAX_LENGTH:
        fields["title"] = f"Title must be {TITLE_MIN_LENGTH}-{TITLE_MAX_LENGTH} characters"
    if not TEXT_MIN_LENGTH <= len(payload.text) <= TEXT_MAX_LENGTH:
        fields["text"] = f"Review must be {TEXT_MIN_LENGTH}-{TEXT_MAX_LENGTH} characters"
    if len(payload.photos) > MAX_PHOTOS:
        fields["photos"] = f"Maximum {MAX_PHOTOS} photos allowed"
    elif any(not p.url.strip() for p in payload.photos):
        fields["photos"] = "Every photo needs a url"
    if fields:
        raise ValidationError("Review failed validation", fields=fields)


def run_reviewer_recompute(author_id: str) -> None:
    """Reviewer-level recompute with its own session, for background execution."""
    with session_scope() as db:
        with_retries(lambda: recompute_reviewer_level(db, author_id), label=f"reviewer {author_id} level")


def _refresh_aggregates(db: Session, business_id: str, author_id: str, defer: Optional[Defer]) -> None:
    # Business rating first and inline, so the author's next search sees it.
    with_retries(lambda: recompute_business_rating(db, business_id), label=f"business {business_id} rating")
    if defer is None:
        with_retries(lambda: recompute_reviewer_level(db, author_id), label=f"reviewer {author_id} level")
    else:
        defer(run_reviewer_recompute, author_id)


def submit_review(
    db: Session,
    business_id: str,
    author_id: str,
    payload: ReviewCreate,
    gate: Optional[ModerationGate] = None,
    defer: Optional[Defer] = None,
) -> Review:
    """Create a review and refresh the aggregates that depend on it.

    Args:
        db: SQLAlchemy Session.
        business_id: Business being reviewed.
        author_id: Acting user.
        payload: Parsed request body.
        gate: Moderation gate; a default one is built when omitted.
        defer: ``defer(fn, *args)`` schedules the reviewer-level recompute
            (e.g. ``BackgroundTasks.add_task``). None runs it inline.

    Returns:
        Review: the persisted review, ``approved`` or ``pending``.

    Raises:
        BusinessNotFound, BusinessNotAvailable, SelfReviewForbidden,
        DuplicateReview, ValidationError.
    """
    business = crud.get_business(db, business_id)
    if business is None:
        raise BusinessNotFound()
    if business.status != BUSINESS_PUBLISHED:
        raise BusinessNotAvailable()
    if author_id == business.owner_id:
        raise SelfReviewForbidden()
    if crud.find_review(db, business_id, author_id) is not None:
        raise DuplicateReview()
    validate_payload(payload)

    gate = gate or ModerationGate()
    verdict = gate.evaluate(payload.title + " " + payload.text)

    review = Review(
        id=str(uuid.uuid4()),
        business_id=business_id,
        author_id=author_id,
        rating=payload.rating,
        title=payload.title,
        text=payload.text,
        status=verdict.admission_status,
        moderation_score=verdict.score,
        moderation_flags=sorted(verdict.flags),
        helpful_count=0,
        report_count=0,
        visit_date=payload.visit_date,
        verified_purchase=payload.verified_purchase,
        anonymous=payload.anonymous,
    )
    photos = [{"url": p.url, "caption": p.caption} for p in payload.photos]
    try:
        review = crud.create_review(db, review, photos)
    except IntegrityError as e:
        # Lost a race with a concurrent submission for the same pair.
        raise DuplicateReview() from e

    logger.info(
        "Review %s created for business %s by %s (status=%s, score=%s)",
        review.id, business_id, author_id, review.status, review.moderation_score,
    )
    _refresh_aggregates(db, business_id, author_id, defer)
    return review


def set_review_status(db: Session, review_id: str, status: str, defer: Optional[Defer] = None) -> Review:
    """Moderation workflow transition; refreshes both aggregates."""
    if status not in REVIEW_STATUSES:
        raise ValidationError("Unknown review status", fields={"status": f"Must be one of {', '.join(REVIEW_STATUSES)}"})
    review = crud.get_review(db, review_id)
    if review is None:
        raise ReviewNotFound()
    previous = review.status
    review = crud.set_review_status(db, review, status)
    logger.info("Review %s moved from %s to %s", review_id, previous, status)
    _refresh_aggregates(db, review.business_id, review.author_id, defer)
    return review


def record_helpful_vote(db: Session, review_id: str, user_id: str, defer: Optional[Defer] = None) -> int:
    """Count ``user_id``'s helpful vote on a review; returns the new total."""
    review = crud.get_review(db, review_id)
    if review is None:
        raise ReviewNotFound()
    if review.author_id == user_id:
        raise SelfVoteForbidden()
    if crud.find_helpful_vote(db, review_id, user_id) is not None:
        raise DuplicateVote()
    author_id = review.author_id
    try:
        total = crud.add_helpful_vote(db, review_id, user_id)
    except IntegrityError as e:
        raise DuplicateVote() from e

    if defer is None:
        with_retries(lambda: recompute_reviewer_level(db, author_id), label=f"reviewer {author_id} level")
    else:
        defer(run_reviewer_recompute, author_id)
    return total
