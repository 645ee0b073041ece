from datetime import date

import pandas as pd
import pytest

from fleet_routes.models import RunStatus, StopStatus
from fleet_routes.reports import (
    aggregate_summary_table,
    daily_run_counts,
    filter_runs_by_end_date,
    history_kpis,
    idle_table,
    run_progress,
    segment_table,
    stop_legend_table,
)
from fleet_routes.run_aggregation import aggregate_runs
from fleet_routes.segment_builder import build_segments


@pytest.fixture
def split_aggregate(split_shift_runs, drivers):
    [agg] = aggregate_runs(split_shift_runs, drivers)
    return agg


def _blank_or(values):
    return [None if pd.isna(v) else v for v in values]


def test_segment_table(completed_run):
    df = segment_table(build_segments(completed_run))
    assert list(df.columns) == ["Segment", "Travel Time", "Stop Time", "Distance (km)", "Color"]
    assert df["Segment"].tolist() == ["Route to Depot A", "Route to Depot B"]
    assert df["Travel Time"].tolist() == ["10 min", "25 min"]
    assert df["Distance (km)"].tolist() == [10.0, 15.0]


def test_segment_table_empty():
    df = segment_table([])
    assert df.empty
    assert "Segment" in df.columns


def test_stop_legend_table(completed_run):
    df = stop_legend_table(completed_run)
    assert df["Stop"].tolist() == ["Depot A", "Depot B"]
    assert df["Travel Time"].tolist() == ["10 min", "25 min"]
    assert df["Stop Time"].tolist() == ["5 min", "10 min"]
    assert df["Occupancy (%)"].tolist() == [40, 80]
    assert df["Arrival"].iloc[0] == pd.Timestamp("2025-01-06 08:10:00")


def test_stop_legend_skips_canceled_and_blanks_unfinished(make_run, make_stop):
    run = make_run(
        status=RunStatus.IN_PROGRESS,
        stops=[
            make_stop("A", arrive=10, depart=15),
            make_stop("Dropped", status=StopStatus.CANCELED),
            make_stop("B", arrive=30, status=StopStatus.IN_PROGRESS),
            make_stop("C", status=StopStatus.PENDING),
        ],
    )
    df = stop_legend_table(run)
    assert df["Stop"].tolist() == ["A", "B", "C"]
    assert _blank_or(df["Travel Time"]) == ["10 min", "15 min", None]
    assert _blank_or(df["Stop Time"]) == ["5 min", None, None]
    assert df["Departure"].isna().tolist() == [False, True, True]


def test_run_progress(make_run, make_stop):
    running = make_run(
        status=RunStatus.IN_PROGRESS,
        stops=[
            make_stop("A", arrive=10, depart=15),
            make_stop("B", status=StopStatus.PENDING),
            make_stop("C", status=StopStatus.CANCELED),
        ],
    )
    assert run_progress(running) == 50.0
    assert run_progress(make_run(status=RunStatus.IN_PROGRESS)) == 0.0
    assert run_progress(make_run(end=10)) == 100.0


def test_history_kpis_and_date_filter(make_run):
    runs = [
        make_run("a", end=60, start_mileage=100.0, end_mileage=130.0),
        make_run("b", start=120, end=150, start_mileage=130.0, end_mileage=140.0),
        make_run("c", start=24 * 60, end=24 * 60 + 30),
    ]
    today = filter_runs_by_end_date(runs, date(2025, 1, 6))
    assert [r.id for r in today] == ["a", "b"]
    assert len(filter_runs_by_end_date(runs, date(2025, 1, 6), date(2025, 1, 7))) == 3

    kpis = history_kpis(today)
    assert kpis == {
        "Total Runs": 2,
        "Total Distance (km)": 40.0,
        "Avg Duration (min)": 45.0,
    }
    assert history_kpis([])["Avg Duration (min)"] == 0.0


def test_daily_run_counts_covers_seven_days(make_run):
    runs = [make_run("a", end=60), make_run("b", start=90, end=120)]
    df = daily_run_counts(runs, date(2025, 1, 6))
    assert len(df) == 7
    assert df["Day"].iloc[0] == "31/12"
    assert df["Day"].iloc[-1] == "06/01"
    assert df["Runs"].tolist() == [0, 0, 0, 0, 0, 0, 2]
    assert daily_run_counts([], date(2025, 1, 6))["Runs"].sum() == 0


def test_aggregate_summary_and_idle_tables(split_aggregate):
    summary = aggregate_summary_table([split_aggregate])
    row = summary.iloc[0]
    assert row["Journey"] == "VAN-1_AM_20250106"
    assert row["Shift"] == "AM"
    assert row["Date"] == "06/01/2025"
    assert row["Runs"] == 2
    assert row["Stops"] == 1
    assert row["Distance (km)"] == 50.0
    assert row["Duration (min)"] == 90
    assert row["Idle (min)"] == 30
    assert row["GPS Distance (km)"] > 0

    idle = idle_table([split_aggregate])
    assert idle["After Run"].tolist() == ["A"]
    assert idle["Before Run"].tolist() == ["B"]
    assert idle["Idle (min)"].tolist() == [30]
