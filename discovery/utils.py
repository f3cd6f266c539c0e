import math
from datetime import datetime, timezone
from typing import Mapping, Optional

from sqlalchemy.inspection import inspect

from .constants import F_COUNT, F_CREATED_AT, F_OVERALL, F_PRICE_LEVEL, F_RATING

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def sa_to_dict(obj, exclude=None, prefix=None):
    """Convert a SQLAlchemy ORM object to a plain dict.

    Args:
        obj: SQLAlchemy ORM instance to convert.
        exclude: Optional set/list of attribute names to exclude from the dict.
        prefix: Optional string to prefix to each dict key.

    Returns:
        dict: Mapping of column attribute name -> value for the given ORM object.
    """
    exclude = exclude or set()
    prefix = prefix or ""
    return {
        prefix + c.key: getattr(obj, c.key)
        for c in inspect(obj).mapper.column_attrs
        if c.key not in exclude
    }


def as_number(value) -> Optional[float]:
    """Float value of ``value``; None for missing, non-numeric or NaN input."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Record accessors. Filtering and ranking work on plain business dicts
# (see crud.to_business_dict) and must tolerate missing or malformed fields.

def rating_overall(business: Mapping) -> Optional[float]:
    rating = business.get(F_RATING)
    if not isinstance(rating, Mapping):
        return None
    return as_number(rating.get(F_OVERALL))


def rating_count(business: Mapping) -> Optional[float]:
    rating = business.get(F_RATING)
    if not isinstance(rating, Mapping):
        return None
    return as_number(rating.get(F_COUNT))


def price_level(business: Mapping) -> Optional[float]:
    return as_number(business.get(F_PRICE_LEVEL))


def created_at(business: Mapping) -> datetime:
    """Creation time of a business; the epoch when unknown."""
    value = business.get(F_CREATED_AT)
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value))
        except ValueError:
            return EPOCH
    return EPOCH
