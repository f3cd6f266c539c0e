import pandas as pd

from .constants import (
    BUSINESS_DRAFT,
    BUSINESS_STATUSES,
    F_AUTHOR_ID,
    F_BUSINESS_ID,
    F_ID,
    F_NAME,
    F_OWNER_ID,
    F_PRICE_LEVEL,
    F_RATING,
    F_STATUS,
    RATING_MAX,
    RATING_MIN,
    REVIEW_PENDING,
    REVIEW_STATUSES,
)

REQUIRED_COLUMNS = {
    "businesses": [F_ID, F_NAME, F_OWNER_ID],
    "reviews": [F_ID, F_BUSINESS_ID, F_AUTHOR_ID, F_RATING],
}


def basic_validations(df: pd.DataFrame, kind: str) -> pd.DataFrame:
    """Check and normalise a catalog DataFrame with normalized column names.

    Fixable issues are corrected rather than rejected: negative price levels
    become 0 (unset), unknown statuses fall back to a safe default, and review
    rows with an out-of-range rating are dropped.

    Args:
        df: DataFrame loaded from a catalog CSV.
        kind: "businesses" or "reviews".

    Returns:
        A cleaned copy of ``df``.

    Raises:
        ValueError: if required key columns are missing.
    """
    required = REQUIRED_COLUMNS[kind]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    df = df.dropna(subset=required).copy()

    if kind == "businesses":
        if F_PRICE_LEVEL in df.columns:
            price = pd.to_numeric(df[F_PRICE_LEVEL], errors="coerce").fillna(0)
            df[F_PRICE_LEVEL] = price.clip(lower=0).astype(int)
        if F_STATUS in df.columns:
            df.loc[~df[F_STATUS].isin(BUSINESS_STATUSES), F_STATUS] = BUSINESS_DRAFT
    else:
        rating = pd.to_numeric(df[F_RATING], errors="coerce")
        df = df[rating.between(RATING_MIN, RATING_MAX)].copy()
        df[F_RATING] = rating[df.index].astype(int)
        if F_STATUS in df.columns:
            df.loc[~df[F_STATUS].isin(REVIEW_STATUSES), F_STATUS] = REVIEW_PENDING
    return df
