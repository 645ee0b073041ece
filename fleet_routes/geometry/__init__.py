"""GPS geometry helpers used by route reconstruction.

This package provides great-circle distances, outlier rejection for noisy
location histories and distance-based thinning for overview polylines.
"""

from .distance import (
    EARTH_RADIUS_KM,
    haversine_km,
    haversine_km_array,
    path_length_km,
    point_distance_km,
)
from .outliers import filter_outliers
from .simplify import simplify_route

__all__ = [
    "EARTH_RADIUS_KM",
    "haversine_km",
    "haversine_km_array",
    "path_length_km",
    "point_distance_km",
    "filter_outliers",
    "simplify_route",
]
