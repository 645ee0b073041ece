"""Great-circle distance helpers."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from ..models import LocationPoint

EARTH_RADIUS_KM = 6371.0


def haversine_km(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Compute distance in km between two (lon, lat) coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def point_distance_km(a: LocationPoint, b: LocationPoint) -> float:
    return haversine_km(a.longitude, a.latitude, b.longitude, b.latitude)


def haversine_km_array(
    lons1: NDArray[np.float64],
    lats1: NDArray[np.float64],
    lons2: NDArray[np.float64],
    lats2: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Vectorised :func:`haversine_km` over equally shaped coordinate arrays."""

    phi1 = np.radians(lats1)
    phi2 = np.radians(lats2)
    d_phi = phi2 - phi1
    d_lambda = np.radians(np.asarray(lons2, dtype=float) - np.asarray(lons1, dtype=float))
    a = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def path_length_km(points: Sequence[LocationPoint]) -> float:
    """Return the summed great-circle length of a point sequence in km."""

    if len(points) < 2:
        return 0.0
    lons = np.asarray([p.longitude for p in points], dtype=float)
    lats = np.asarray([p.latitude for p in points], dtype=float)
    legs = haversine_km_array(lons[:-1], lats[:-1], lons[1:], lats[1:])
    return float(np.sum(legs))


__all__ = [
    "EARTH_RADIUS_KM",
    "haversine_km",
    "haversine_km_array",
    "path_length_km",
    "point_distance_km",
]
