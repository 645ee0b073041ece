"""Online rejection of implausible GPS jumps."""

from __future__ import annotations

import logging
from typing import List, Sequence

from ..config import OUTLIER_MAX_JUMP_KM
from ..models import LocationPoint
from .distance import point_distance_km

LOGGER = logging.getLogger(__name__)


def filter_outliers(
    points: Sequence[LocationPoint], max_jump_km: float = OUTLIER_MAX_JUMP_KM
) -> List[LocationPoint]:
    """Drop points that jump more than ``max_jump_km`` from the last accepted point.

    ``points`` must already be sorted by timestamp. The first point is always
    kept. Each later point is compared with the last *accepted* point, so a
    single glitch never becomes the anchor for the points that follow it.
    Rejections are logged, not raised.
    """

    if len(points) < 2:
        return list(points)
    kept: List[LocationPoint] = [points[0]]
    rejected = 0
    for current in points[1:]:
        distance = point_distance_km(kept[-1], current)
        if distance <= max_jump_km:
            kept.append(current)
            continue
        rejected += 1
        LOGGER.debug(
            "Outlier removed at %s: %.2f km from last accepted point",
            current.timestamp.isoformat(),
            distance,
        )
    if rejected:
        LOGGER.warning(
            "Removed %d GPS outlier(s) out of %d points (threshold=%.1f km)",
            rejected,
            len(points),
            max_jump_km,
        )
    return kept


__all__ = ["filter_outliers"]
