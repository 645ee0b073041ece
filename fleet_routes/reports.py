"""Report table builders.

Pure functions that turn route views and raw runs into DataFrames ready to be
written to Excel: the per-journey segment legend, per-stop details, the
history KPIs and idle time between runs. Kept apart from the writer so the
transformation logic is testable on its own.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .geometry import path_length_km
from .models import (
    AggregatedRun,
    Journey,
    Run,
    RunStatus,
    Segment,
    StopStatus,
)
from .run_aggregation import local_date
from .utils import format_minutes, round_minutes

SEGMENT_COL = "Segment"
TRAVEL_TIME_COL = "Travel Time"
STOP_TIME_COL = "Stop Time"
DISTANCE_COL = "Distance (km)"
COLOR_COL = "Color"
SEGMENT_COLUMNS = [SEGMENT_COL, TRAVEL_TIME_COL, STOP_TIME_COL, DISTANCE_COL, COLOR_COL]

STOP_INDEX_COL = "#"
STOP_NAME_COL = "Stop"
STOP_STATUS_COL = "Status"
ARRIVAL_COL = "Arrival"
DEPARTURE_COL = "Departure"
OCCUPANCY_COL = "Occupancy (%)"
STOP_COLUMNS = [
    STOP_INDEX_COL,
    STOP_NAME_COL,
    STOP_STATUS_COL,
    ARRIVAL_COL,
    DEPARTURE_COL,
    TRAVEL_TIME_COL,
    STOP_TIME_COL,
    OCCUPANCY_COL,
]

KPI_TOTAL_RUNS = "Total Runs"
KPI_TOTAL_DISTANCE = "Total Distance (km)"
KPI_AVG_DURATION = "Avg Duration (min)"

DAY_COL = "Day"
RUNS_COL = "Runs"

JOURNEY_COL = "Journey"
VEHICLE_COL = "Vehicle"
DRIVER_COL = "Driver"
SHIFT_COL = "Shift"
DATE_COL = "Date"
START_COL = "Start"
END_COL = "End"
STOPS_COL = "Stops"
GPS_DISTANCE_COL = "GPS Distance (km)"
DURATION_COL = "Duration (min)"
IDLE_COL = "Idle (min)"
SUMMARY_COLUMNS = [
    JOURNEY_COL,
    VEHICLE_COL,
    DRIVER_COL,
    SHIFT_COL,
    DATE_COL,
    START_COL,
    END_COL,
    STOP_STATUS_COL,
    RUNS_COL,
    STOPS_COL,
    DISTANCE_COL,
    GPS_DISTANCE_COL,
    DURATION_COL,
    IDLE_COL,
]

IDLE_AFTER_COL = "After Run"
IDLE_BEFORE_COL = "Before Run"
IDLE_FROM_COL = "Idle From"
IDLE_UNTIL_COL = "Idle Until"
IDLE_COLUMNS = [
    JOURNEY_COL,
    IDLE_AFTER_COL,
    IDLE_BEFORE_COL,
    IDLE_FROM_COL,
    IDLE_UNTIL_COL,
    IDLE_COL,
]

__all__ = [
    "aggregate_summary_table",
    "daily_run_counts",
    "filter_runs_by_end_date",
    "history_kpis",
    "idle_table",
    "run_progress",
    "segment_table",
    "stop_legend_table",
]


def _localise(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Convert aware timestamps to naive local time (Excel has no time zones)."""

    from .config import FLEET_TIMEZONE

    for col in columns:
        if col in df.columns and not df.empty:
            dt = pd.to_datetime(df[col], utc=True, errors="coerce")
            df[col] = dt.dt.tz_convert(FLEET_TIMEZONE).dt.tz_localize(None)
    return df


def segment_table(segments: Sequence[Segment]) -> pd.DataFrame:
    rows = [
        {
            SEGMENT_COL: s.label,
            TRAVEL_TIME_COL: s.travel_time_label,
            STOP_TIME_COL: s.stop_time_label,
            DISTANCE_COL: round(s.distance, 1) if s.distance is not None else None,
            COLOR_COL: s.color,
        }
        for s in segments
    ]
    return pd.DataFrame(rows, columns=SEGMENT_COLUMNS)


def stop_legend_table(journey: Journey) -> pd.DataFrame:
    """Per-stop rows for the legend, skipping canceled stops.

    Travel time runs from the previous recorded departure (or the journey
    start); stop time is only shown once the stop has a departure.
    """

    rows: List[Dict[str, object]] = []
    last_departure = journey.start_time
    for position, stop in enumerate(journey.stops, start=1):
        if stop.status is StopStatus.CANCELED:
            continue
        travel = None
        dwell = None
        if stop.arrival_time is not None:
            travel = format_minutes(stop.arrival_time - last_departure)
            if stop.departure_time is not None:
                dwell = format_minutes(stop.departure_time - stop.arrival_time)
        if stop.departure_time is not None:
            last_departure = stop.departure_time
        rows.append(
            {
                STOP_INDEX_COL: position,
                STOP_NAME_COL: stop.name,
                STOP_STATUS_COL: stop.status.value,
                ARRIVAL_COL: stop.arrival_time,
                DEPARTURE_COL: stop.departure_time,
                TRAVEL_TIME_COL: travel,
                STOP_TIME_COL: dwell,
                OCCUPANCY_COL: stop.occupancy,
            }
        )
    df = pd.DataFrame(rows, columns=STOP_COLUMNS)
    return _localise(df, [ARRIVAL_COL, DEPARTURE_COL])


def run_progress(run: Journey) -> float:
    """Percentage of non-canceled stops completed (100 for a finished run)."""

    if run.status is RunStatus.COMPLETED:
        return 100.0
    active = [s for s in run.stops if s.status is not StopStatus.CANCELED]
    if not active:
        return 0.0
    done = sum(1 for s in active if s.status is StopStatus.COMPLETED)
    return done / len(active) * 100.0


def filter_runs_by_end_date(
    runs: Iterable[Run], start: date, end: Optional[date] = None
) -> List[Run]:
    """Keep runs whose end falls on a local calendar day in ``[start, end]``."""

    last = end or start
    return [
        r
        for r in runs
        if r.end_time is not None and start <= local_date(r.end_time) <= last
    ]


def history_kpis(runs: Sequence[Run]) -> Dict[str, float]:
    total_distance = 0.0
    total_seconds = 0.0
    for run in runs:
        if run.end_mileage is not None and run.start_mileage is not None:
            total_distance += run.end_mileage - run.start_mileage
        if run.end_time is not None:
            total_seconds += (run.end_time - run.start_time).total_seconds()
    count = len(runs)
    return {
        KPI_TOTAL_RUNS: count,
        KPI_TOTAL_DISTANCE: round(total_distance, 1),
        KPI_AVG_DURATION: round(total_seconds / count / 60.0, 1) if count else 0.0,
    }


def daily_run_counts(runs: Iterable[Run], end_day: date, days: int = 7) -> pd.DataFrame:
    """Count runs per local end day over the ``days`` ending at ``end_day``."""

    window = pd.date_range(end=pd.Timestamp(end_day), periods=days, freq="D").date
    ended = pd.Series(
        [local_date(r.end_time) for r in runs if r.end_time is not None], dtype=object
    )
    counts = ended.value_counts() if not ended.empty else pd.Series(dtype=int)
    return pd.DataFrame(
        {
            DAY_COL: [day.strftime("%d/%m") for day in window],
            RUNS_COL: [int(counts.get(day, 0)) for day in window],
        }
    )


def _idle_minutes(aggregate: AggregatedRun) -> int:
    return sum(round_minutes(gap.duration) for gap in aggregate.idle_gaps)


def aggregate_summary_table(aggregates: Sequence[AggregatedRun]) -> pd.DataFrame:
    rows = []
    for agg in aggregates:
        duration = agg.total_duration
        rows.append(
            {
                JOURNEY_COL: agg.key.slug,
                VEHICLE_COL: agg.vehicle_id,
                DRIVER_COL: agg.driver_name,
                SHIFT_COL: agg.key.shift,
                DATE_COL: agg.key.date.strftime("%d/%m/%Y"),
                START_COL: agg.start_time,
                END_COL: agg.end_time,
                STOP_STATUS_COL: agg.status.value,
                RUNS_COL: len(agg.original_runs),
                STOPS_COL: len(agg.stops),
                DISTANCE_COL: round(agg.total_distance, 1),
                GPS_DISTANCE_COL: round(path_length_km(agg.location_history), 2),
                DURATION_COL: round_minutes(duration) if duration is not None else None,
                IDLE_COL: _idle_minutes(agg),
            }
        )
    df = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    return _localise(df, [START_COL, END_COL])


def idle_table(aggregates: Sequence[AggregatedRun]) -> pd.DataFrame:
    rows = [
        {
            JOURNEY_COL: agg.key.slug,
            IDLE_AFTER_COL: gap.previous_run_id,
            IDLE_BEFORE_COL: gap.next_run_id,
            IDLE_FROM_COL: gap.start,
            IDLE_UNTIL_COL: gap.end,
            IDLE_COL: round_minutes(gap.duration),
        }
        for agg in aggregates
        for gap in agg.idle_gaps
    ]
    df = pd.DataFrame(rows, columns=IDLE_COLUMNS)
    return _localise(df, [IDLE_FROM_COL, IDLE_UNTIL_COL])
