"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable factory fixtures for runs,
stops and location points so the route tests do not repeat model boilerplate.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fleet_routes.models import Driver, LocationPoint, Run, RunStatus, Stop, StopStatus
from fleet_routes.run_aggregation import clear_aggregate_cache

T0 = datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc)


# --- Factory helpers -------------------------------------------------
def _at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


def _make_point(minutes, lat=51.48, lon=-3.18):
    return LocationPoint(latitude=lat, longitude=lon, timestamp=_at(minutes))


def _make_track(start_min, end_min, lat0=51.48, lon0=-3.18, step=0.001):
    """One point per minute heading north by ``step`` degrees (~110 m)."""

    return tuple(
        _make_point(m, lat=lat0 + (m - start_min) * step, lon=lon0)
        for m in range(start_min, end_min + 1)
    )


def _make_stop(name, arrive=None, depart=None, status=StopStatus.COMPLETED, mileage=None, occupancy=None, collected=()):
    return Stop(
        name=name,
        status=status,
        arrival_time=_at(arrive) if arrive is not None else None,
        departure_time=_at(depart) if depart is not None else None,
        mileage_at_stop=mileage,
        occupancy=occupancy,
        collected=collected,
    )


def _make_run(
    run_id="run-1",
    start=0,
    end=None,
    status=RunStatus.COMPLETED,
    stops=(),
    history=(),
    start_mileage=100.0,
    end_mileage=None,
    driver_id="d1",
    vehicle_id="VAN-1",
):
    return Run(
        id=run_id,
        driver_id=driver_id,
        driver_name="Dana",
        vehicle_id=vehicle_id,
        start_mileage=start_mileage,
        start_time=_at(start),
        end_mileage=end_mileage,
        end_time=_at(end) if end is not None else None,
        status=status,
        stops=tuple(stops),
        location_history=tuple(history),
    )


# --- Fixtures --------------------------------------------------------
@pytest.fixture(autouse=True)
def _fresh_aggregate_cache():
    clear_aggregate_cache()
    yield
    clear_aggregate_cache()


@pytest.fixture
def at():
    return _at


@pytest.fixture
def make_point():
    return _make_point


@pytest.fixture
def make_track():
    return _make_track


@pytest.fixture
def make_stop():
    return _make_stop


@pytest.fixture
def make_run():
    return _make_run


@pytest.fixture
def drivers():
    return {
        "d1": Driver(id="d1", name="Dana", shift="AM"),
        "d2": Driver(id="d2", name="Eli", shift="PM"),
    }


@pytest.fixture
def completed_run():
    """Two-stop completed run with an hour of GPS points."""

    return _make_run(
        end=60,
        end_mileage=130.0,
        stops=[
            _make_stop("Depot A", arrive=10, depart=15, mileage=110.0, occupancy=40),
            _make_stop("Depot B", arrive=40, depart=50, mileage=125.0, occupancy=80),
        ],
        history=_make_track(0, 60),
    )


@pytest.fixture
def split_shift_runs():
    """Runs A and B of one vehicle and shift with a 30 minute idle gap."""

    first = _make_run(
        "A",
        start=0,
        end=30,
        start_mileage=100.0,
        stops=[_make_stop("X", arrive=10, depart=12, mileage=120.0)],
        history=_make_track(0, 30),
    )
    second = _make_run(
        "B",
        start=60,
        end=90,
        start_mileage=120.0,
        end_mileage=150.0,
        history=_make_track(60, 90, lat0=51.51),
    )
    return [first, second]
