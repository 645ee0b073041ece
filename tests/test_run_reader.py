import json
from datetime import datetime, timezone

import pytest

from fleet_routes.errors import RunDataFormatError
from fleet_routes.models import RunStatus, StopStatus
from fleet_routes.run_reader import (
    parse_driver,
    parse_location,
    parse_run,
    parse_stop,
    read_run_records,
)


def _run_doc(**overrides):
    doc = {
        "id": "r1",
        "driverId": "d1",
        "driverName": "Dana",
        "vehicleId": "VAN-1",
        "startMileage": 100,
        "endMileage": 130.5,
        "startTime": "2025-01-06T08:00:00Z",
        "endTime": {"seconds": 1736154000, "nanoseconds": 0},
        "status": "completed",
        "stops": [
            {
                "name": "Depot A",
                "status": "COMPLETED",
                "arrivalTime": "2025-01-06T08:10:00+00:00",
                "departureTime": "2025-01-06T08:15:00+00:00",
                "mileageAtStop": "110",
                "occupancy": 40,
                "collected": {"bags": 3, "notes": ["wet"]},
            }
        ],
        "locationHistory": [
            {"latitude": 51.48, "longitude": -3.18, "timestamp": 1736150400},
        ],
    }
    doc.update(overrides)
    return doc


def test_parse_run_all_timestamp_forms():
    run = parse_run(_run_doc())
    assert run.start_time == datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc)
    assert run.end_time == datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)
    assert run.location_history[0].timestamp == run.start_time
    assert run.status is RunStatus.COMPLETED
    assert run.start_mileage == 100.0
    assert run.end_mileage == 130.5

    [stop] = run.stops
    assert stop.status is StopStatus.COMPLETED
    assert stop.mileage_at_stop == 110.0
    assert stop.occupancy == 40
    assert dict(stop.collected) == {"bags": 3, "notes": '["wet"]'}


def test_naive_timestamps_are_utc():
    run = parse_run(_run_doc(startTime="2025-01-06T08:00:00"))
    assert run.start_time.tzinfo is not None
    assert run.start_time.utcoffset().total_seconds() == 0


def test_open_run_defaults():
    run = parse_run(_run_doc(endTime=None, endMileage="", status=None, stops=None))
    assert run.end_time is None
    assert run.end_mileage is None
    assert run.stops == ()


def test_missing_required_fields():
    doc = _run_doc()
    del doc["vehicleId"]
    with pytest.raises(RunDataFormatError, match="vehicleId"):
        parse_run(doc, 2)


def test_unknown_status_rejected():
    with pytest.raises(RunDataFormatError, match="Unknown status"):
        parse_run(_run_doc(status="PAUSED"))


def test_bad_timestamp_rejected():
    with pytest.raises(RunDataFormatError):
        parse_run(_run_doc(startTime="yesterday"))


def test_departure_before_arrival_is_dropped(caplog):
    stop = parse_stop(
        {
            "name": "A",
            "status": "COMPLETED",
            "arrivalTime": "2025-01-06T08:10:00Z",
            "departureTime": "2025-01-06T08:05:00Z",
        },
        "stop",
    )
    assert stop.departure_time is None
    assert "ignoring departure" in caplog.text


def test_location_range_checked():
    with pytest.raises(RunDataFormatError, match="out-of-range"):
        parse_location({"latitude": 95, "longitude": 0, "timestamp": 0}, "point")
    with pytest.raises(RunDataFormatError):
        parse_location({"latitude": 10, "timestamp": 0}, "point")


def test_parse_driver_blank_shift():
    driver = parse_driver({"id": "d1", "name": "Dana", "shift": " "})
    assert driver.shift is None


def test_read_run_records(tmp_path):
    path = tmp_path / "runs.json"
    path.write_text(
        json.dumps(
            {
                "drivers": [{"id": "d1", "name": "Dana", "shift": "AM"}],
                "runs": [_run_doc(), _run_doc(id="r2", status="IN_PROGRESS", endTime=None)],
            }
        ),
        encoding="utf-8",
    )
    runs, drivers = read_run_records(path)
    assert [r.id for r in runs] == ["r1", "r2"]
    assert drivers["d1"].shift == "AM"


def test_read_run_records_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_run_records(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(RunDataFormatError, match="Invalid JSON"):
        read_run_records(broken)

    wrong_shape = tmp_path / "list.json"
    wrong_shape.write_text("[]", encoding="utf-8")
    with pytest.raises(RunDataFormatError):
        read_run_records(wrong_shape)
