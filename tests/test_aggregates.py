import pytest
from sqlalchemy.exc import OperationalError

from discovery import crud
from discovery.aggregates import (
    mean_rating,
    recompute_business_rating,
    recompute_reviewer_level,
    reviewer_level,
    summarize_ratings,
    with_retries,
)
from discovery.models import Business, ReviewerProfile


def test_business_rating_is_mean_of_approved_reviews(db, add_business, add_review):
    add_business("b1")
    for i, rating in enumerate([5, 5, 4, 3, 5]):
        add_review(f"r{i}", author_id=f"u{i}", rating=rating)

    assert recompute_business_rating(db, "b1") == (4.4, 5)
    business = db.get(Business, "b1")
    db.refresh(business)
    assert (business.rating_overall, business.rating_count) == (4.4, 5)


def test_pending_and_rejected_reviews_are_ignored(db, add_business, add_review):
    add_business("b1")
    for i, rating in enumerate([5, 5, 4, 3, 5]):
        add_review(f"r{i}", author_id=f"u{i}", rating=rating)
    add_review("pending", author_id="p", rating=1, status="pending")
    add_review("rejected", author_id="q", rating=1, status="rejected")
    add_review("flagged", author_id="f", rating=1, status="flagged")

    assert recompute_business_rating(db, "b1") == (4.4, 5)


def test_no_approved_reviews_resets_to_zero(db, add_business, add_review):
    add_business("b1", rating_overall=3.0, rating_count=2)
    add_review("r1", rating=4, status="pending")
    assert recompute_business_rating(db, "b1") == (0.0, 0)


def test_recompute_is_idempotent(db, add_business, add_review):
    add_business("b1")
    add_review("r1", author_id="a", rating=4)
    add_review("r2", author_id="b", rating=3)
    first = recompute_business_rating(db, "b1")
    assert recompute_business_rating(db, "b1") == first == (3.5, 2)


def test_mean_rating_rounds_to_two_places():
    assert mean_rating([5, 4, 4]) == (4.33, 3)
    assert mean_rating([]) == (0.0, 0)


@pytest.mark.parametrize("total, helpful, level", [
    (0, 0, "beginner"),
    (4, 500, "beginner"),
    (5, 0, "intermediate"),
    (19, 49, "intermediate"),
    (20, 49, "intermediate"),
    (20, 50, "advanced"),
    (19, 100, "intermediate"),
    (49, 100, "advanced"),
    (50, 99, "advanced"),
    (50, 100, "expert"),
])
def test_reviewer_level_thresholds(total, helpful, level):
    assert reviewer_level(total, helpful) == level


def test_recompute_reviewer_level_counts_only_approved(db, add_business, add_review):
    for i in range(6):
        add_business(f"b{i}")
        add_review(f"r{i}", business_id=f"b{i}", author_id="alice", helpful_count=3)
    add_business("b9")
    add_review("r9", business_id="b9", author_id="alice", status="pending", helpful_count=100)

    assert recompute_reviewer_level(db, "alice") == "intermediate"
    profile = db.get(ReviewerProfile, "alice")
    assert (profile.total_approved_reviews, profile.helpful_votes_received) == (6, 18)


def test_recompute_reviewer_level_updates_existing_profile(db, add_business, add_review):
    add_business("b1")
    add_review("r1", author_id="bob")
    assert recompute_reviewer_level(db, "bob") == "beginner"
    for i in range(2, 6):
        add_business(f"b{i}")
        add_review(f"r{i}", business_id=f"b{i}", author_id="bob")
    assert recompute_reviewer_level(db, "bob") == "intermediate"
    assert db.query(ReviewerProfile).filter_by(author_id="bob").count() == 1


def test_failed_write_keeps_previous_pair(db, add_business, add_review, monkeypatch):
    add_business("b1")
    add_review("r1", author_id="a", rating=2)
    recompute_business_rating(db, "b1")
    add_review("r2", author_id="b", rating=4)

    def boom(*args, **kwargs):
        raise OperationalError("UPDATE businesses", {}, Exception("database is locked"))

    monkeypatch.setattr(crud, "write_business_rating", boom)
    with pytest.raises(OperationalError):
        recompute_business_rating(db, "b1")

    business = db.get(Business, "b1")
    db.refresh(business)
    assert (business.rating_overall, business.rating_count) == (2.0, 1)


def test_with_retries_retries_then_gives_up():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 2:
            raise OperationalError("SELECT", {}, Exception("locked"))
        return "ok"

    assert with_retries(flaky, attempts=3) == "ok"
    assert len(calls) == 2

    def always_fails():
        raise OperationalError("SELECT", {}, Exception("locked"))

    assert with_retries(always_fails, attempts=2) is None


def test_summarize_ratings():
    summary = summarize_ratings({5: 3, 4: 1, 1: 1, 7: 4})
    assert summary["ratingDistribution"] == {1: 1, 2: 0, 3: 0, 4: 1, 5: 3}
    assert summary["totalReviews"] == 5
    assert summary["averageRating"] == 4.0


def test_summarize_empty_histogram():
    assert summarize_ratings({}) == {
        "ratingDistribution": {1: 0, 2: 0, 3: 0, 4: 0, 5: 0},
        "averageRating": 0,
        "totalReviews": 0,
    }
