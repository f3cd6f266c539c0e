"""
Catalog import: load businesses (and optionally seed reviews) from CSV exports.

Existing ids are skipped, so re-running an import is a no-op. After loading,
the rating aggregate of every touched business and the level of every touched
reviewer are recomputed from the stored reviews.
"""

import argparse
import hashlib
import logging
from typing import Optional

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from .aggregates import recompute_business_rating, recompute_reviewer_level, with_retries
from .constants import (
    BUSINESS_DRAFT,
    BUSINESS_RENAME_MAP,
    F_AUTHOR_ID,
    F_BUSINESS_ID,
    F_CATEGORIES,
    F_CREATED_AT,
    F_DESCRIPTION,
    F_FILE_HASH,
    F_HELPFUL_COUNT,
    F_ID,
    F_LAT,
    F_LNG,
    F_LOADED_ROWS,
    F_NAME,
    F_OPEN_NOW,
    F_OWNER_ID,
    F_PRICE_LEVEL,
    F_RATING,
    F_SOURCE_PATH,
    F_SPONSORED,
    F_STATUS,
    F_TAGS,
    F_TEXT,
    F_TITLE,
    F_TOTAL_ROWS,
    F_VERIFIED,
    LIST_SEPARATOR,
    REVIEW_PENDING,
    REVIEW_RENAME_MAP,
)
from .database import init_db, session_scope
from .metadata import IngestMetadata
from .models import Business, Review
from .validate import basic_validations

logger = logging.getLogger(__name__)

TRUE_STRINGS = {"true", "1", "yes", "y", "t"}


def compute_file_hash(file_path: str) -> str:
    h = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def load_dataframe(path: str, rename_map: dict) -> pd.DataFrame:
    df = pd.read_csv(path)
    df = df.rename(columns=rename_map)
    for key in (F_ID, F_BUSINESS_ID, F_AUTHOR_ID, F_OWNER_ID):
        if key in df.columns:
            df[key] = df[key].map(lambda v: None if pd.isna(v) else str(v))
    if F_CREATED_AT in df.columns:
        df[F_CREATED_AT] = pd.to_datetime(df[F_CREATED_AT], errors="coerce", utc=True)
    return df


def _clean(value):
    if value is None:
        return None
    if not isinstance(value, (list, tuple)) and pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


def _as_bool(value) -> bool:
    value = _clean(value)
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def _as_list(value) -> list[str]:
    value = _clean(value)
    if value is None:
        return []
    return [part.strip() for part in str(value).split(LIST_SEPARATOR) if part.strip()]


def _as_float(value) -> Optional[float]:
    value = _clean(value)
    return None if value is None else float(value)


def _existing_ids(session: Session, model) -> set:
    return set(session.execute(select(model.id)).scalars().all())


def _set_created_at(obj, rec: dict) -> None:
    # Leave unset so the column default applies.
    created = _clean(rec.get(F_CREATED_AT))
    if created is not None:
        obj.created_at = created


def business_from_record(rec: dict) -> Business:
    business = Business(
        id=rec[F_ID],
        name=str(rec[F_NAME]),
        description=_clean(rec.get(F_DESCRIPTION)),
        categories=_as_list(rec.get(F_CATEGORIES)),
        tags=_as_list(rec.get(F_TAGS)),
        lat=_as_float(rec.get(F_LAT)),
        lng=_as_float(rec.get(F_LNG)),
        price_level=int(_clean(rec.get(F_PRICE_LEVEL)) or 0),
        verified=_as_bool(rec.get(F_VERIFIED)),
        sponsored=_as_bool(rec.get(F_SPONSORED)),
        open_now=_as_bool(rec.get(F_OPEN_NOW)),
        status=_clean(rec.get(F_STATUS)) or BUSINESS_DRAFT,
        owner_id=rec[F_OWNER_ID],
    )
    _set_created_at(business, rec)
    return business


def review_from_record(rec: dict) -> Review:
    review = Review(
        id=rec[F_ID],
        business_id=rec[F_BUSINESS_ID],
        author_id=rec[F_AUTHOR_ID],
        rating=int(rec[F_RATING]),
        title=str(_clean(rec.get(F_TITLE)) or ""),
        text=str(_clean(rec.get(F_TEXT)) or ""),
        status=_clean(rec.get(F_STATUS)) or REVIEW_PENDING,
        helpful_count=int(_clean(rec.get(F_HELPFUL_COUNT)) or 0),
        moderation_flags=[],
    )
    _set_created_at(review, rec)
    return review


def ingest_businesses(db: Session, csv_path: str) -> int:
    file_hash = compute_file_hash(csv_path)
    df = basic_validations(load_dataframe(csv_path, BUSINESS_RENAME_MAP), "businesses")
    total_rows = len(df)

    existing = _existing_ids(db, Business)
    df = df.drop_duplicates(subset=[F_ID])
    df = df[~df[F_ID].isin(existing)]
    objects = [business_from_record(rec) for rec in df.to_dict("records")]
    if objects:
        db.add_all(objects)

    db.add(IngestMetadata(kind="businesses", **{
        F_SOURCE_PATH: csv_path,
        F_TOTAL_ROWS: total_rows,
        F_LOADED_ROWS: len(objects),
        F_FILE_HASH: file_hash,
    }))
    db.commit()
    logger.info("Business import complete. Rows in: %s, businesses loaded: %s", total_rows, len(objects))
    return len(objects)


def ingest_reviews(db: Session, csv_path: str) -> tuple[set, set]:
    """Load review rows; returns the (business ids, author ids) that were touched.

    Rows for unknown businesses, self-reviews and repeated (business, author)
    pairs are skipped.
    """
    file_hash = compute_file_hash(csv_path)
    df = basic_validations(load_dataframe(csv_path, REVIEW_RENAME_MAP), "reviews")
    total_rows = len(df)

    owners = dict(db.execute(select(Business.id, Business.owner_id)).all())
    pairs = set(db.execute(select(Review.business_id, Review.author_id)).all())
    existing = _existing_ids(db, Review)

    objects = []
    for rec in df.drop_duplicates(subset=[F_ID]).to_dict("records"):
        pair = (rec[F_BUSINESS_ID], rec[F_AUTHOR_ID])
        if rec[F_ID] in existing or pair in pairs:
            continue
        if pair[0] not in owners or owners[pair[0]] == pair[1]:
            logger.warning("Skipping review %s: unknown business or self-review", rec[F_ID])
            continue
        pairs.add(pair)
        objects.append(review_from_record(rec))
    touched = ({r.business_id for r in objects}, {r.author_id for r in objects})
    if objects:
        db.add_all(objects)

    db.add(IngestMetadata(kind="reviews", **{
        F_SOURCE_PATH: csv_path,
        F_TOTAL_ROWS: total_rows,
        F_LOADED_ROWS: len(objects),
        F_FILE_HASH: file_hash,
    }))
    db.commit()
    logger.info("Review import complete. Rows in: %s, reviews loaded: %s", total_rows, len(objects))
    return touched


def run(businesses_csv: Optional[str] = None, reviews_csv: Optional[str] = None) -> None:
    init_db()
    with session_scope() as session:
        if businesses_csv:
            ingest_businesses(session, businesses_csv)
        if reviews_csv:
            business_ids, author_ids = ingest_reviews(session, reviews_csv)
            for business_id in sorted(business_ids):
                with_retries(lambda: recompute_business_rating(session, business_id), label=f"business {business_id} rating")
            for author_id in sorted(author_ids):
                with_retries(lambda: recompute_reviewer_level(session, author_id), label=f"reviewer {author_id} level")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Import a business catalog and seed reviews from CSV")
    parser.add_argument("--businesses", help="Path to businesses CSV file")
    parser.add_argument("--reviews", help="Path to reviews CSV file")
    args = parser.parse_args()
    if not args.businesses and not args.reviews:
        parser.error("give --businesses and/or --reviews")
    run(args.businesses, args.reviews)
