from typing import Iterable, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from .constants import (
    BUSINESS_PUBLISHED,
    F_COORDINATES,
    F_COUNT,
    F_CREATED_AT,
    F_LAT,
    F_LNG,
    F_OVERALL,
    F_PHOTOS,
    F_RATING,
    REVIEW_APPROVED,
    REVIEW_SORT_HELPFUL,
    REVIEW_SORT_NEWEST,
    REVIEW_SORT_OLDEST,
    REVIEW_SORT_RATING_HIGH,
    REVIEW_SORT_RATING_LOW,
    REVIEW_SORT_RELEVANCE,
)
from .models import Business, HelpfulVote, Review, ReviewerProfile, ReviewPhoto
from .schemas import Viewer
from .utils import as_utc, sa_to_dict


def to_business_dict(b: Business) -> dict:
    """Convert a Business ORM object to the record shape used by search.

    Args:
        b: Business ORM instance.

    Returns:
        dict: flat business fields plus nested ``coordinates`` and ``rating``.
    """
    row = sa_to_dict(b, exclude={F_LAT, F_LNG, "rating_overall", "rating_count"})
    row["categories"] = list(b.categories or [])
    row["tags"] = list(b.tags or [])
    row[F_COORDINATES] = {F_LAT: b.lat, F_LNG: b.lng} if b.lat is not None and b.lng is not None else None
    row[F_RATING] = {F_OVERALL: b.rating_overall, F_COUNT: b.rating_count}
    row[F_CREATED_AT] = as_utc(b.created_at)
    return row


def to_review_dict(r: Review) -> dict:
    """Convert a Review ORM object, with its photos, to a plain dict."""
    row = sa_to_dict(r)
    row["moderation_flags"] = list(r.moderation_flags or [])
    row[F_CREATED_AT] = as_utc(r.created_at)
    row["visit_date"] = as_utc(r.visit_date)
    row[F_PHOTOS] = [
        {"url": p.url, "caption": p.caption, "order": p.order}
        for p in sorted(r.photos, key=lambda p: p.order)
    ]
    return row


def get_business(db: Session, business_id: str) -> Optional[Business]:
    return db.get(Business, business_id)


def can_view(business: Business, viewer: Viewer) -> bool:
    if viewer.is_admin or business.status == BUSINESS_PUBLISHED:
        return True
    return viewer.user_id is not None and business.owner_id == viewer.user_id


def fetch_visible_businesses(db: Session, viewer: Viewer) -> list[dict]:
    """Candidate set for search, restricted to what ``viewer`` may see.

    Admins see every business; owners also see their own unpublished ones;
    everybody else sees published businesses only. Rows come back in id order
    so that ties in ranking are reproducible.
    """
    stmt = select(Business)
    if not viewer.is_admin:
        if viewer.user_id:
            stmt = stmt.where(or_(Business.status == BUSINESS_PUBLISHED, Business.owner_id == viewer.user_id))
        else:
            stmt = stmt.where(Business.status == BUSINESS_PUBLISHED)
    stmt = stmt.order_by(Business.id)
    return [to_business_dict(b) for b in db.execute(stmt).scalars().all()]


def get_review(db: Session, review_id: str) -> Optional[Review]:
    return db.get(Review, review_id)


def find_review(db: Session, business_id: str, author_id: str) -> Optional[Review]:
    stmt = select(Review).where(Review.business_id == business_id, Review.author_id == author_id)
    return db.execute(stmt).scalars().first()


def create_review(db: Session, review: Review, photos: Iterable[dict] = ()) -> Review:
    """Persist a review and its photos in one transaction.

    Photos keep their submission order in a 1-based ``order`` column.

    Raises:
        sqlalchemy.exc.IntegrityError: when the (business, author) pair already exists.
    """
    db.add(review)
    for position, photo in enumerate(photos, start=1):
        db.add(ReviewPhoto(review_id=review.id, url=photo["url"], caption=photo.get("caption"), order=position))
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(review)
    return review


def approved_ratings(db: Session, business_id: str) -> list[int]:
    stmt = select(Review.rating).where(Review.business_id == business_id, Review.status == REVIEW_APPROVED)
    return list(db.execute(stmt).scalars().all())


def approved_helpful_counts(db: Session, author_id: str) -> list[int]:
    stmt = select(Review.helpful_count).where(Review.author_id == author_id, Review.status == REVIEW_APPROVED)
    return [c or 0 for c in db.execute(stmt).scalars().all()]


def write_business_rating(db: Session, business_id: str, overall: float, count: int) -> None:
    """Replace both rating columns in a single UPDATE and commit."""
    stmt = (
        update(Business)
        .where(Business.id == business_id)
        .values(rating_overall=overall, rating_count=count)
    )
    db.execute(stmt)
    db.commit()


def upsert_reviewer_profile(db: Session, author_id: str, total: int, helpful: int, level: str) -> ReviewerProfile:
    profile = db.get(ReviewerProfile, author_id)
    if profile is None:
        profile = ReviewerProfile(author_id=author_id)
        db.add(profile)
    profile.total_approved_reviews = total
    profile.helpful_votes_received = helpful
    profile.level = level
    db.commit()
    return profile


def reviewer_profiles(db: Session, author_ids: Iterable[str]) -> dict[str, ReviewerProfile]:
    """Profiles of the given authors keyed by author id; authors without one are absent."""
    ids = list(set(author_ids))
    if not ids:
        return {}
    stmt = select(ReviewerProfile).where(ReviewerProfile.author_id.in_(ids))
    return {p.author_id: p for p in db.execute(stmt).scalars().all()}


def approved_rating_histogram(db: Session, business_ids: Iterable[str]) -> dict[int, int]:
    """Count approved reviews per star rating across ``business_ids``."""
    ids = list(business_ids)
    if not ids:
        return {}
    stmt = (
        select(Review.rating, func.count(Review.id))
        .where(Review.business_id.in_(ids), Review.status == REVIEW_APPROVED)
        .group_by(Review.rating)
    )
    return {int(rating): int(n) for rating, n in db.execute(stmt).all()}


REVIEW_ORDERINGS = {
    REVIEW_SORT_NEWEST: (Review.created_at.desc(),),
    REVIEW_SORT_OLDEST: (Review.created_at.asc(),),
    REVIEW_SORT_RATING_HIGH: (Review.rating.desc(), Review.created_at.desc()),
    REVIEW_SORT_RATING_LOW: (Review.rating.asc(), Review.created_at.desc()),
    REVIEW_SORT_HELPFUL: (Review.helpful_count.desc(), Review.created_at.desc()),
    REVIEW_SORT_RELEVANCE: (Review.helpful_count.desc(), Review.rating.desc()),
}


def query_reviews_by_business(
    db: Session, business_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    min_rating: Optional[int] = None,
    max_rating: Optional[int] = None,
    limit: int = 20,
    offset: int = 0,
    statuses: Optional[Iterable[str]] = None,
    sort: str = REVIEW_SORT_NEWEST,
):
    """Query reviews of a business with optional filters, ordered by ``sort``.

    Args:
        db: SQLAlchemy Session.
        business_id: Business identifier to filter reviews.
        start_date: Inclusive start date to filter created_at.
        end_date: Exclusive end date to filter created_at.
        min_rating: Minimum rating (inclusive).
        max_rating: Maximum rating (inclusive).
        limit: Max rows to return.
        offset: Row offset for pagination.
        statuses: Review statuses to include; None means all.
        sort: Key of REVIEW_ORDERINGS; unknown keys order newest first.

    Returns:
        List[Review]: ORM Review objects matching filters.
    """
    stmt = select(Review).where(Review.business_id == business_id)
    if statuses is not None:
        stmt = stmt.where(Review.status.in_(list(statuses)))
    if start_date:
        stmt = stmt.where(Review.created_at >= start_date)
    if end_date:
        stmt = stmt.where(Review.created_at < end_date)
    if min_rating is not None:
        stmt = stmt.where(Review.rating >= min_rating)
    if max_rating is not None:
        stmt = stmt.where(Review.rating <= max_rating)
    ordering = REVIEW_ORDERINGS.get(sort, REVIEW_ORDERINGS[REVIEW_SORT_NEWEST])
    stmt = stmt.order_by(*ordering, Review.id).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def find_helpful_vote(db: Session, review_id: str, user_id: str) -> Optional[HelpfulVote]:
    stmt = select(HelpfulVote).where(HelpfulVote.review_id == review_id, HelpfulVote.user_id == user_id)
    return db.execute(stmt).scalars().first()


def add_helpful_vote(db: Session, review_id: str, user_id: str) -> int:
    """Record a vote and store the recounted total on the review.

    Raises:
        sqlalchemy.exc.IntegrityError: when this user already voted.
    """
    db.add(HelpfulVote(review_id=review_id, user_id=user_id))
    try:
        db.flush()
        total = db.execute(
            select(func.count(HelpfulVote.id)).where(HelpfulVote.review_id == review_id)
        ).scalar_one()
        db.execute(update(Review).where(Review.id == review_id).values(helpful_count=total))
        db.commit()
    except Exception:
        db.rollback()
        raise
    return total


def set_review_status(db: Session, review: Review, status: str) -> Review:
    review.status = status
    db.commit()
    db.refresh(review)
    return review
