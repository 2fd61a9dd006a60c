"""Great-circle distance between WGS84 coordinates."""

from __future__ import annotations

import math
from typing import Sequence

from .models import Position

EARTH_RADIUS_KM = 6371.0


def great_circle_distance_km(
    lat1: float, lon1: float, lat2: float, lon2: float
) -> float:
    """Return the haversine distance in kilometres between two points.

    Uses the ``atan2`` form, which stays accurate for the tens-of-metres
    spacing between consecutive 1 Hz fixes. Identical points yield ``0.0``.
    """

    sin = math.sin
    cos = math.cos
    radians = math.radians
    lat1_rad = radians(lat1)
    lat2_rad = radians(lat2)
    sin_half_lat = sin((lat2_rad - lat1_rad) / 2.0)
    sin_half_lon = sin(radians(lon2 - lon1) / 2.0)
    a = sin_half_lat**2 + cos(lat1_rad) * cos(lat2_rad) * sin_half_lon**2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


def path_length_km(points: Sequence[Position]) -> float:
    """Sum the great-circle legs of an ordered sequence of positions."""

    if len(points) < 2:
        return 0.0
    total = 0.0
    previous = points[0]
    for current in points[1:]:
        total += great_circle_distance_km(*previous, *current)
        previous = current
    return total


__all__ = ["EARTH_RADIUS_KM", "great_circle_distance_km", "path_length_km"]
