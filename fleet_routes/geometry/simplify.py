"""Distance-based thinning of location histories for the overview polyline."""

from __future__ import annotations

from typing import List, Sequence

from ..config import SIMPLIFY_MIN_SPACING_KM
from ..models import LocationPoint, LonLat
from .distance import haversine_km


def simplify_route(
    points: Sequence[LocationPoint], min_spacing_km: float = SIMPLIFY_MIN_SPACING_KM
) -> List[LonLat]:
    """Thin a time-ordered history into ``(lon, lat)`` pairs for rendering.

    A point is kept when it lies more than ``min_spacing_km`` from the last
    kept point. The first point is always kept and the last original point is
    always appended so the drawn path ends at the true final position.
    """

    coords = [p.lon_lat for p in points]
    if len(coords) < 2:
        return coords
    simplified: List[LonLat] = [coords[0]]
    last_index = 0
    for index in range(1, len(coords)):
        last = simplified[-1]
        current = coords[index]
        if haversine_km(last[0], last[1], current[0], current[1]) > min_spacing_km:
            simplified.append(current)
            last_index = index
    if last_index != len(coords) - 1:
        simplified.append(coords[-1])
    return simplified


__all__ = ["simplify_route"]
