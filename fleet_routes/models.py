from __future__ import annotations

from dataclasses import dataclass
import json
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Mapping, NamedTuple, Optional, Tuple, Union

from .utils import format_minutes

# Sentinel shown instead of a dwell duration while the vehicle is still at a stop.
IN_PROGRESS_LABEL = "in progress"
NOT_AVAILABLE_LABEL = "n/a"

LonLat = Tuple[float, float]


def _hashable_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return json.dumps(value, sort_keys=True, default=str)


class StopStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"

    def can_transition_to(self, target: "StopStatus") -> bool:
        """Return True when ``target`` is a legal next state for this status."""

        return target in _STOP_TRANSITIONS[self]


_STOP_TRANSITIONS = {
    StopStatus.PENDING: frozenset({StopStatus.IN_PROGRESS, StopStatus.CANCELED}),
    StopStatus.IN_PROGRESS: frozenset({StopStatus.COMPLETED, StopStatus.CANCELED}),
    StopStatus.COMPLETED: frozenset(),
    StopStatus.CANCELED: frozenset(),
}


class RunStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True, slots=True)
class LocationPoint:
    latitude: float
    longitude: float
    timestamp: datetime

    @property
    def lon_lat(self) -> LonLat:
        return (self.longitude, self.latitude)


@dataclass(frozen=True, slots=True)
class Stop:
    name: str
    status: StopStatus = StopStatus.PENDING
    arrival_time: Optional[datetime] = None
    departure_time: Optional[datetime] = None
    mileage_at_stop: Optional[float] = None
    # Fill percentage captured by the driver when leaving the stop
    occupancy: Optional[int] = None
    # Free-form collected-quantity fields (bags, weight, ...)
    collected: Tuple[Tuple[str, Any], ...] = ()

    def __post_init__(self) -> None:
        # Values must be hashable: runs are memoization keys.
        pairs = self.collected
        if isinstance(pairs, Mapping):
            pairs = sorted(pairs.items())
        object.__setattr__(
            self,
            "collected",
            tuple((str(k), _hashable_value(v)) for k, v in pairs),
        )


@dataclass(frozen=True, slots=True)
class Run:
    id: str
    driver_id: str
    driver_name: str
    vehicle_id: str
    start_mileage: Optional[float]
    start_time: datetime
    end_mileage: Optional[float] = None
    end_time: Optional[datetime] = None
    status: RunStatus = RunStatus.IN_PROGRESS
    stops: Tuple[Stop, ...] = ()
    location_history: Tuple[LocationPoint, ...] = ()


@dataclass(frozen=True, slots=True)
class Driver:
    id: str
    name: str
    shift: Optional[str] = None


class AggregateKey(NamedTuple):
    """Grouping key for runs of one vehicle, shift and calendar day."""

    vehicle_id: str
    shift: Optional[str]
    date: date

    @property
    def slug(self) -> str:
        return f"{self.vehicle_id}_{self.shift or '-'}_{self.date:%Y%m%d}"

    @classmethod
    def parse(cls, slug: str) -> "AggregateKey":
        vehicle_id, shift, day = slug.rsplit("_", 2)
        return cls(
            vehicle_id=vehicle_id,
            shift=None if shift == "-" else shift,
            date=datetime.strptime(day, "%Y%m%d").date(),
        )


@dataclass(frozen=True, slots=True)
class IdleGap:
    """Time the vehicle sat idle between two consecutive runs."""

    previous_run_id: str
    next_run_id: str
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass(frozen=True, slots=True)
class AggregatedRun:
    """Computed view merging the runs of one vehicle, shift and day."""

    key: AggregateKey
    driver_id: str
    driver_name: str
    vehicle_id: str
    start_time: datetime
    end_time: Optional[datetime]
    start_mileage: Optional[float]
    end_mileage: Optional[float]
    status: RunStatus
    stops: Tuple[Stop, ...]
    location_history: Tuple[LocationPoint, ...]
    original_runs: Tuple[Run, ...]
    idle_gaps: Tuple[IdleGap, ...] = ()

    @property
    def total_distance(self) -> float:
        if self.end_mileage is None or self.start_mileage is None:
            return 0.0
        return self.end_mileage - self.start_mileage

    @property
    def total_duration(self) -> Optional[timedelta]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


Journey = Union[Run, AggregatedRun]
StopTime = Union[timedelta, str, None]


@dataclass(frozen=True, slots=True)
class Segment:
    """Travel leg ending at a stop plus the dwell time spent there."""

    id: str
    label: str
    path: Tuple[LonLat, ...]
    color: str
    travel_time: timedelta
    stop_time: StopTime = None
    distance: Optional[float] = None
    stop: Optional[Stop] = None
    opacity: Optional[float] = None

    @property
    def travel_time_label(self) -> str:
        return format_minutes(self.travel_time)

    @property
    def stop_time_label(self) -> str:
        if isinstance(self.stop_time, timedelta):
            return format_minutes(self.stop_time)
        return self.stop_time or ""

    @property
    def distance_label(self) -> str:
        if self.distance is None:
            return NOT_AVAILABLE_LABEL
        return f"{self.distance:.1f} km"
