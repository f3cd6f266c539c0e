import math
from typing import Mapping, Optional

from .constants import F_COORDINATES, F_LAT, F_LNG

EARTH_RADIUS_MILES = 3959


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in miles between two points given in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a just outside [0, 1] for near-antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def coordinates_of(business: Mapping) -> Optional[tuple[float, float]]:
    """(lat, lng) of a business record, or None when absent or malformed."""
    coords = business.get(F_COORDINATES)
    if not coords:
        return None
    try:
        lat = float(coords[F_LAT])
        lng = float(coords[F_LNG])
    except (KeyError, TypeError, ValueError):
        return None
    if math.isnan(lat) or math.isnan(lng):
        return None
    return lat, lng


def distance_to(user_location: Mapping, business: Mapping) -> Optional[float]:
    """Miles from ``user_location`` ({lat, lng}) to ``business``, None if it has no location."""
    coords = coordinates_of(business)
    if coords is None:
        return None
    return haversine_miles(user_location[F_LAT], user_location[F_LNG], coords[0], coords[1])
