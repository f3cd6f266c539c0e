from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query
from sqlalchemy.orm import Session

from . import config, crud
from .aggregates import summarize_ratings
from .constants import (
    REVIEW_APPROVED,
    REVIEW_PENDING,
    REVIEW_SORT_NEWEST,
    ROLE_USER,
    SORT_RELEVANCE,
    SUBMISSION_PENDING,
    SUBMISSION_PUBLISHED,
)
from .database import get_db
from .errors import BusinessNotFound, Forbidden, Unauthorized, ValidationError
from .filters import FilterCriteria
from .reviews import record_helpful_vote, set_review_status, submit_review
from .schemas import ReviewCreate, ReviewStatusUpdate, Viewer
from .search import SearchParams, search_businesses

router = APIRouter()


def get_viewer(
    x_user_id: Annotated[Optional[str], Header()] = None,
    x_user_role: Annotated[Optional[str], Header()] = None,
) -> Viewer:
    """Acting identity from the headers set by the authentication proxy."""
    return Viewer(user_id=x_user_id or None, role=x_user_role or ROLE_USER)


def require_user(viewer: Viewer = Depends(get_viewer)) -> Viewer:
    if not viewer.user_id:
        raise Unauthorized()
    return viewer


def _range(name: str, low: Optional[float], high: Optional[float], floor: float, ceiling: float):
    """Inclusive (low, high) bounds, or None when neither end is given."""
    if low is None and high is None:
        return None
    low = floor if low is None else low
    high = ceiling if high is None else high
    if low > high:
        raise ValidationError(f"{name} minimum cannot exceed maximum", fields={name: "min > max"})
    return (low, high)


def business_search_params(
    q: Optional[str] = None,
    rating_min: Annotated[Optional[float], Query(alias="ratingMin", ge=0, le=5)] = None,
    rating_max: Annotated[Optional[float], Query(alias="ratingMax", ge=0, le=5)] = None,
    price_min: Annotated[Optional[int], Query(alias="priceMin", ge=0)] = None,
    price_max: Annotated[Optional[int], Query(alias="priceMax", ge=0)] = None,
    distance_min: Annotated[Optional[float], Query(alias="distanceMin", ge=0)] = None,
    distance_max: Annotated[Optional[float], Query(alias="distanceMax", ge=0)] = None,
    lat: Annotated[Optional[float], Query(ge=-90, le=90)] = None,
    lng: Annotated[Optional[float], Query(ge=-180, le=180)] = None,
    categories: Annotated[Optional[list[str]], Query()] = None,
    open_now: Annotated[Optional[bool], Query(alias="openNow")] = None,
    verified: Optional[bool] = None,
    sponsored: Optional[bool] = None,
    sort: str = SORT_RELEVANCE,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=config.MAX_PAGE_LIMIT)] = config.DEFAULT_PAGE_LIMIT,
) -> SearchParams:
    """Translate ``GET /businesses`` query parameters into SearchParams.

    A range with only one bound given is open on the other side. Distance
    bounds are kept even without ``lat``/``lng``; the filter then skips them.
    """
    criteria = FilterCriteria(
        keywords=q or None,
        rating_range=_range("rating", rating_min, rating_max, 0, 5),
        distance_range=_range("distance", distance_min, distance_max, 0, float("inf")),
        price_range=_range("price", price_min, price_max, 0, float("inf")),
        categories=tuple(c for c in categories or () if c) or None,
        open_now=open_now,
        verified=verified,
        sponsored=sponsored,
    )
    return SearchParams(criteria=criteria, sort=sort, page=page, limit=limit, user_lat=lat, user_lng=lng)


def validate_review_filters(
    min_rating: Annotated[Optional[int], Query(ge=1, le=5)] = None,
    max_rating: Annotated[Optional[int], Query(ge=1, le=5)] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Annotated[int, Query(gt=0, le=config.MAX_PAGE_LIMIT)] = config.DEFAULT_PAGE_LIMIT,
    offset: Annotated[int, Query(ge=0)] = 0,
    sort: str = REVIEW_SORT_NEWEST,
):
    """Validate and normalise query parameters of review listings.

    Returns:
        dict: normalised filter values.
    """
    if min_rating is not None and max_rating is not None and min_rating > max_rating:
        raise ValidationError("min_rating cannot exceed max_rating", fields={"min_rating": "min > max"})
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date cannot exceed end_date", fields={"start_date": "start > end"})
    if sort not in crud.REVIEW_ORDERINGS:
        raise ValidationError(f"Unknown sort {sort!r}", fields={"sort": f"one of {sorted(crud.REVIEW_ORDERINGS)}"})
    return {
        "min_rating": min_rating,
        "max_rating": max_rating,
        "start_date": start_date,
        "end_date": end_date,
        "limit": limit,
        "offset": offset,
        "sort": sort,
    }


def public_review(row: dict, viewer: Viewer) -> dict:
    """Hide the author of anonymous reviews from everyone but admins and the author."""
    if row.get("anonymous") and not viewer.is_admin and viewer.user_id != row.get("author_id"):
        row = dict(row, author_id=None, reviewer=None)
    return row


def reviewer_summary(profile) -> Optional[dict]:
    if profile is None:
        return None
    return {
        "level": profile.level,
        "total_approved_reviews": profile.total_approved_reviews,
        "helpful_votes_received": profile.helpful_votes_received,
    }


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/businesses")
def list_businesses(
    params: SearchParams = Depends(business_search_params),
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    """Filtered, ranked and paginated businesses with rating aggregates."""
    return search_businesses(db, params, viewer)


@router.get("/businesses/{business_id}")
def business_detail(business_id: str, viewer: Viewer = Depends(get_viewer), db: Session = Depends(get_db)):
    business = crud.get_business(db, business_id)
    if business is None or not crud.can_view(business, viewer):
        raise BusinessNotFound()
    return crud.to_business_dict(business)


@router.post("/reviews", status_code=201)
def create_review(
    body: ReviewCreate,
    background_tasks: BackgroundTasks,
    viewer: Viewer = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Submit a review. Flagged text is accepted but held for moderation.

    Returns:
        dict: ``{"review", "status"}`` where status is "published" or
        "pending_moderation".
    """
    review = submit_review(db, body.business_id, viewer.user_id, body, defer=background_tasks.add_task)
    status = SUBMISSION_PENDING if review.status == REVIEW_PENDING else SUBMISSION_PUBLISHED
    return {"review": crud.to_review_dict(review), "status": status}


@router.get("/reviews/business/{business_id}")
def reviews_for_business(
    business_id: str,
    filters: dict = Depends(validate_review_filters),
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    """Reviews of a business in the requested order, with its rating summary.

    Owners of the business and admins see every status; everyone else sees
    approved reviews only. Each review carries its author's reviewer level.
    The rating summary always counts approved reviews only.
    """
    business = crud.get_business(db, business_id)
    if business is None or not crud.can_view(business, viewer):
        raise BusinessNotFound()
    sees_all = viewer.is_admin or (viewer.user_id is not None and viewer.user_id == business.owner_id)
    items = crud.query_reviews_by_business(
        db,
        business_id,
        filters["start_date"],
        filters["end_date"],
        filters["min_rating"],
        filters["max_rating"],
        filters["limit"],
        filters["offset"],
        statuses=None if sees_all else [REVIEW_APPROVED],
        sort=filters["sort"],
    )
    profiles = crud.reviewer_profiles(db, (r.author_id for r in items))
    reviews = [
        public_review(dict(crud.to_review_dict(r), reviewer=reviewer_summary(profiles.get(r.author_id))), viewer)
        for r in items
    ]
    summary = summarize_ratings(crud.approved_rating_histogram(db, [business_id]))
    return {"reviews": reviews, **summary}


@router.patch("/reviews/{review_id}/status")
def update_review_status(
    review_id: str,
    body: ReviewStatusUpdate,
    background_tasks: BackgroundTasks,
    viewer: Viewer = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Moderator decision on a review (admins only)."""
    if not viewer.is_admin:
        raise Forbidden("Only administrators can moderate reviews")
    review = set_review_status(db, review_id, body.status, defer=background_tasks.add_task)
    return {"review": crud.to_review_dict(review)}


@router.post("/reviews/{review_id}/helpful")
def mark_review_helpful(
    review_id: str,
    background_tasks: BackgroundTasks,
    viewer: Viewer = Depends(require_user),
    db: Session = Depends(get_db),
):
    total = record_helpful_vote(db, review_id, viewer.user_id, defer=background_tasks.add_task)
    return {"reviewId": review_id, "helpfulCount": total}
