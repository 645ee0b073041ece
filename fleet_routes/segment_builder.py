"""Partition a journey's location history into per-stop travel and dwell segments."""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import List, Optional, Sequence

from .config import CURRENT_SEGMENT_COLOR, OUTLIER_MAX_JUMP_KM
from .geometry import filter_outliers
from .models import (
    IN_PROGRESS_LABEL,
    Journey,
    LocationPoint,
    LonLat,
    RunStatus,
    Segment,
    Stop,
    StopStatus,
)
from .presentation import segment_color
from .utils import utc_now

LOGGER = logging.getLogger(__name__)

CURRENT_SEGMENT_ID = "segment-current"
CURRENT_SEGMENT_LABEL = "Current position"
_SEGMENTABLE_STATUSES = frozenset({StopStatus.COMPLETED, StopStatus.IN_PROGRESS})


@dataclass(frozen=True, slots=True)
class _Cursor:
    """Last known departure time and odometer reading while scanning stops."""

    time: datetime
    mileage: Optional[float]


def _advance(cursor: _Cursor, stop: Stop) -> _Cursor:
    # Missing departure/mileage leaves the cursor where it was.
    return _Cursor(
        time=stop.departure_time if stop.departure_time is not None else cursor.time,
        mileage=(
            stop.mileage_at_stop if stop.mileage_at_stop is not None else cursor.mileage
        ),
    )


def segmentable_stops(stops: Sequence[Stop]) -> List[Stop]:
    """Return reached stops ordered by arrival; ties keep declaration order."""

    reached = [
        s
        for s in stops
        if s.status in _SEGMENTABLE_STATUSES and s.arrival_time is not None
    ]
    reached.sort(key=lambda s: s.arrival_time)
    return reached


def prepare_history(
    points: Sequence[LocationPoint], max_jump_km: float = OUTLIER_MAX_JUMP_KM
) -> List[LocationPoint]:
    """Sort a raw history by timestamp and drop implausible jumps."""

    ordered = sorted(points, key=lambda p: p.timestamp)
    return filter_outliers(ordered, max_jump_km)


class _History:
    """Time-indexed view over a sorted, filtered location history."""

    def __init__(self, points: Sequence[LocationPoint]) -> None:
        self.points = list(points)
        self._timestamps = [p.timestamp for p in self.points]

    def between(self, start: datetime, end: datetime) -> List[LonLat]:
        lo = bisect_left(self._timestamps, start)
        hi = bisect_right(self._timestamps, end)
        return [p.lon_lat for p in self.points[lo:hi]]

    def since(self, start: datetime) -> List[LonLat]:
        lo = bisect_left(self._timestamps, start)
        return [p.lon_lat for p in self.points[lo:]]

    def first_at_or_after(self, moment: datetime) -> Optional[LonLat]:
        index = bisect_left(self._timestamps, moment)
        if index >= len(self.points):
            return None
        return self.points[index].lon_lat

    def last_at_or_before(self, moment: datetime) -> Optional[LonLat]:
        index = bisect_right(self._timestamps, moment) - 1
        if index < 0:
            return None
        return self.points[index].lon_lat


def _boundary_point(
    history: _History, start_time: datetime, previous: Optional[Stop]
) -> Optional[LonLat]:
    if previous is None:
        return history.first_at_or_after(start_time)
    if previous.departure_time is None:
        return None
    return history.last_at_or_before(previous.departure_time)


def _stop_segment(
    position: int,
    stop: Stop,
    arrival: datetime,
    cursor: _Cursor,
    history: _History,
    boundary: Optional[LonLat],
) -> Segment:
    path = history.between(cursor.time, arrival)
    if boundary is not None:
        path.insert(0, boundary)
    if stop.departure_time is not None:
        stop_time = stop.departure_time - arrival
    else:
        stop_time = IN_PROGRESS_LABEL
    distance = None
    if stop.mileage_at_stop is not None and cursor.mileage is not None:
        distance = stop.mileage_at_stop - cursor.mileage
    return Segment(
        id=f"segment-{position}",
        label=f"Route to {stop.name}",
        path=tuple(path),
        color=segment_color(position),
        travel_time=arrival - cursor.time,
        stop_time=stop_time,
        distance=distance,
        stop=stop,
    )


def build_segments(
    journey: Journey,
    *,
    now: Optional[datetime] = None,
    max_jump_km: float = OUTLIER_MAX_JUMP_KM,
) -> List[Segment]:
    """Reconstruct the ordered travel/dwell legs of a run or aggregated run.

    Args:
        journey: A single :class:`Run` or an :class:`AggregatedRun`.
        now: Reference "present moment" for the live leg of an in-progress
            journey. Defaults to the current UTC time.
        max_jump_km: Outlier threshold applied to the location history.

    Returns:
        One segment per reached stop in arrival order, followed by a
        ``segment-current`` leg when the vehicle is travelling after its last
        departure. Returns an empty list when there is no location history.
    """

    if not journey.location_history:
        return []
    history = _History(prepare_history(journey.location_history, max_jump_km))
    stops = segmentable_stops(journey.stops)

    segments: List[Segment] = []
    cursor = _Cursor(time=journey.start_time, mileage=journey.start_mileage)
    previous: Optional[Stop] = None
    for stop in stops:
        arrival = stop.arrival_time
        if arrival is None:
            continue
        boundary = _boundary_point(history, journey.start_time, previous)
        segments.append(
            _stop_segment(len(segments), stop, arrival, cursor, history, boundary)
        )
        cursor = _advance(cursor, stop)
        previous = stop

    if journey.status is RunStatus.IN_PROGRESS:
        live = _current_segment(history, cursor, previous, now)
        if live is not None:
            segments.append(live)
    LOGGER.debug(
        "Built %d segments from %d stops and %d points",
        len(segments),
        len(stops),
        len(history.points),
    )
    return segments


def _current_segment(
    history: _History,
    cursor: _Cursor,
    last_stop: Optional[Stop],
    now: Optional[datetime],
) -> Optional[Segment]:
    # Still dwelling at the last stop: there is no travel leg yet.
    if last_stop is not None and last_stop.departure_time is None:
        return None
    path = history.since(cursor.time)
    if not path:
        return None
    reference = now if now is not None else utc_now()
    return Segment(
        id=CURRENT_SEGMENT_ID,
        label=CURRENT_SEGMENT_LABEL,
        path=tuple(path),
        color=CURRENT_SEGMENT_COLOR,
        travel_time=reference - cursor.time,
    )


__all__ = [
    "CURRENT_SEGMENT_ID",
    "build_segments",
    "prepare_history",
    "segmentable_stops",
]
