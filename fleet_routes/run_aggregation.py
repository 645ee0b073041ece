"""Run aggregation helpers.

Pure transformation: drivers may stop and restart the tracking client several
times per shift, so the raw runs of one vehicle, shift and calendar day are
merged here into a single :class:`AggregatedRun`. The aggregate is a computed
view. It is memoized on its inputs and never stored.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import RLock
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo

from cachetools import LRUCache, cached
from cachetools.keys import hashkey

from .config import AGGREGATE_CACHE_SIZE
from .models import (
    AggregatedRun,
    AggregateKey,
    Driver,
    IdleGap,
    LocationPoint,
    Run,
    RunStatus,
    Stop,
    StopStatus,
)

LOGGER = logging.getLogger(__name__)

DriverLookup = Union[Mapping[str, Driver], Iterable[Driver]]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_AGGREGATE_CACHE: LRUCache = LRUCache(maxsize=AGGREGATE_CACHE_SIZE)
_AGGREGATE_CACHE_LOCK = RLock()


def _driver_index(drivers: DriverLookup) -> Mapping[str, Driver]:
    if isinstance(drivers, Mapping):
        return drivers
    return {driver.id: driver for driver in drivers}


def local_date(moment: datetime):
    from .config import FLEET_TIMEZONE

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(FLEET_TIMEZONE)).date()


def arrival_sort_key(stop: Stop) -> Tuple[bool, datetime]:
    """Sort key placing stops by arrival, with unarrived stops last."""

    return (stop.arrival_time is None, stop.arrival_time or _EPOCH)


def aggregate_key(run: Run, drivers: DriverLookup) -> AggregateKey:
    """Return the (vehicle, shift, calendar day) key a run belongs to."""

    driver = _driver_index(drivers).get(run.driver_id)
    shift = driver.shift if driver is not None else None
    return AggregateKey(run.vehicle_id, shift, local_date(run.start_time))


def group_runs(
    runs: Iterable[Run], drivers: DriverLookup
) -> Dict[AggregateKey, List[Run]]:
    """Group runs by aggregate key, each group sorted by start time.

    Groups are ordered by the start time of their earliest run.
    """

    index = _driver_index(drivers)
    groups: Dict[AggregateKey, List[Run]] = {}
    for run in runs:
        if run.driver_id not in index:
            LOGGER.debug(
                "Run %s has unknown driver %s; grouping without shift",
                run.id,
                run.driver_id,
            )
        groups.setdefault(aggregate_key(run, index), []).append(run)
    for members in groups.values():
        members.sort(key=lambda r: r.start_time)
    ordered = sorted(groups.items(), key=lambda item: item[1][0].start_time)
    return dict(ordered)


def _end_mileage(last_run: Run) -> Optional[float]:
    if last_run.end_mileage is not None:
        return last_run.end_mileage
    # A run left open has no end-mileage capture; use the furthest stop reading.
    readings = [
        s.mileage_at_stop for s in last_run.stops if s.mileage_at_stop is not None
    ]
    return max(readings) if readings else None


def _idle_gaps(runs: Sequence[Run]) -> Tuple[IdleGap, ...]:
    gaps: List[IdleGap] = []
    for previous, following in zip(runs, runs[1:]):
        if previous.end_time is None:
            continue
        if following.start_time > previous.end_time:
            gaps.append(
                IdleGap(
                    previous_run_id=previous.id,
                    next_run_id=following.id,
                    start=previous.end_time,
                    end=following.start_time,
                )
            )
    return tuple(gaps)


def _merged_stops(runs: Sequence[Run], status: RunStatus) -> Tuple[Stop, ...]:
    wanted = {StopStatus.COMPLETED}
    if status is RunStatus.IN_PROGRESS:
        wanted.add(StopStatus.IN_PROGRESS)
    stops = [stop for run in runs for stop in run.stops if stop.status in wanted]
    stops.sort(key=arrival_sort_key)
    return tuple(stops)


def _merged_history(runs: Sequence[Run]) -> Tuple[LocationPoint, ...]:
    points = [point for run in runs for point in run.location_history]
    points.sort(key=lambda p: p.timestamp)
    return tuple(points)


@cached(
    cache=_AGGREGATE_CACHE,
    key=lambda key, runs: hashkey(key, tuple(runs)),
    lock=_AGGREGATE_CACHE_LOCK,
)
def build_aggregate(key: AggregateKey, runs: Sequence[Run]) -> AggregatedRun:
    """Merge the runs sharing ``key`` into one logical journey.

    Args:
        key: Grouping key shared by all ``runs``.
        runs: Non-empty collection of runs; order does not matter.

    Returns:
        The aggregated journey. Stops are limited to COMPLETED ones
        (plus IN_PROGRESS while the aggregate is still open) and ordered by
        arrival; location history is merged and sorted by timestamp.

    Raises:
        ValueError: If ``runs`` is empty.
    """

    if not runs:
        raise ValueError("Cannot aggregate an empty run collection")
    ordered = sorted(runs, key=lambda r: r.start_time)
    first, last = ordered[0], ordered[-1]
    status = (
        RunStatus.IN_PROGRESS
        if any(r.status is RunStatus.IN_PROGRESS for r in ordered)
        else RunStatus.COMPLETED
    )
    return AggregatedRun(
        key=key,
        driver_id=first.driver_id,
        driver_name=first.driver_name,
        vehicle_id=first.vehicle_id,
        start_time=first.start_time,
        end_time=last.end_time,
        start_mileage=first.start_mileage,
        end_mileage=_end_mileage(last),
        status=status,
        stops=_merged_stops(ordered, status),
        location_history=_merged_history(ordered),
        original_runs=tuple(ordered),
        idle_gaps=_idle_gaps(ordered),
    )


def aggregate_runs(runs: Iterable[Run], drivers: DriverLookup) -> List[AggregatedRun]:
    """Return one aggregated journey per (vehicle, shift, day), ordered by start."""

    groups = group_runs(runs, drivers)
    aggregates = [build_aggregate(key, members) for key, members in groups.items()]
    LOGGER.info(
        "Aggregated %d runs into %d journeys",
        sum(len(members) for members in groups.values()),
        len(aggregates),
    )
    return aggregates


def clear_aggregate_cache() -> None:
    with _AGGREGATE_CACHE_LOCK:
        _AGGREGATE_CACHE.clear()


__all__ = [
    "aggregate_key",
    "aggregate_runs",
    "arrival_sort_key",
    "build_aggregate",
    "clear_aggregate_cache",
    "group_runs",
]
