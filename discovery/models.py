from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from .database import Base
from .constants import (
    BUSINESS_DRAFT,
    LEVEL_BEGINNER,
    REVIEW_PENDING,
    TBL_BUSINESSES,
    TBL_HELPFUL_VOTES,
    TBL_REVIEWER_PROFILES,
    TBL_REVIEW_PHOTOS,
    TBL_REVIEWS,
)


class Business(Base):
    __tablename__ = TBL_BUSINESSES
    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    categories: Mapped[list] = mapped_column(JSON, default=list)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Written only by aggregates.recompute_business_rating, always together.
    rating_overall: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    price_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sponsored: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    open_now: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default=BUSINESS_DRAFT, index=True)
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    created_at: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True), server_default=func.now())

    reviews = relationship("Review", back_populates="business")


class Review(Base):
    __tablename__ = TBL_REVIEWS
    __table_args__ = (UniqueConstraint("business_id", "author_id", name="uq_review_business_author"),)

    id: Mapped[str] = mapped_column(String, primary_key=True)
    business_id: Mapped[str] = mapped_column(String, ForeignKey(f"{TBL_BUSINESSES}.id"), index=True)
    author_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default=REVIEW_PENDING, index=True)
    moderation_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    moderation_flags: Mapped[list] = mapped_column(JSON, default=list)
    helpful_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    report_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    visit_date: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_purchase: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True), server_default=func.now())

    business = relationship("Business", back_populates="reviews")
    photos = relationship("ReviewPhoto", back_populates="review", order_by="ReviewPhoto.order")


class ReviewPhoto(Base):
    __tablename__ = TBL_REVIEW_PHOTOS
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    review_id: Mapped[str] = mapped_column(String, ForeignKey(f"{TBL_REVIEWS}.id"), index=True)
    url: Mapped[str] = mapped_column(String, nullable=False)
    caption: Mapped[str | None] = mapped_column(String, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-based submission position

    review = relationship("Review", back_populates="photos")


class ReviewerProfile(Base):
    __tablename__ = TBL_REVIEWER_PROFILES
    author_id: Mapped[str] = mapped_column(String, primary_key=True)
    total_approved_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    helpful_votes_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[str] = mapped_column(String, nullable=False, default=LEVEL_BEGINNER)
    updated_at: Mapped["DateTime | None"] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class HelpfulVote(Base):
    __tablename__ = TBL_HELPFUL_VOTES
    __table_args__ = (UniqueConstraint("review_id", "user_id", name="uq_helpful_vote_review_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    review_id: Mapped[str] = mapped_column(String, ForeignKey(f"{TBL_REVIEWS}.id"), index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True), server_default=func.now())
