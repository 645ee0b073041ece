"""Run record reading layer (pure reads + validation).

Loads the JSON export of run and driver documents written by the tracking
client and turns them into immutable model objects. Timestamps may be ISO-8601
strings, epoch seconds or Firestore ``{"seconds", "nanoseconds"}`` objects.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import RunDataFormatError
from .models import Driver, LocationPoint, Run, RunStatus, Stop, StopStatus
from .utils import to_utc_aware

LOGGER = logging.getLogger(__name__)

_REQUIRED_RUN_FIELDS = ("id", "driverId", "vehicleId", "startTime")
_REQUIRED_DRIVER_FIELDS = ("id",)


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _parse_timestamp(value: object, label: str) -> Optional[datetime]:
    if _is_blank(value):
        return None
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        if not isinstance(seconds, (int, float)) or not isinstance(nanos, (int, float)):
            raise RunDataFormatError(f"Invalid timestamp object for {label}: {value!r}")
        base = datetime.fromtimestamp(seconds, tz=timezone.utc)
        return base + timedelta(microseconds=nanos / 1000.0)
    if isinstance(value, bool):
        raise RunDataFormatError(f"Invalid timestamp for {label}: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        candidate = value.strip()
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            return to_utc_aware(datetime.fromisoformat(candidate))
        except ValueError as exc:
            raise RunDataFormatError(
                f"Invalid timestamp for {label}: {value!r}"
            ) from exc
    raise RunDataFormatError(f"Invalid timestamp for {label}: {value!r}")


def _parse_float(value: object, label: str) -> Optional[float]:
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        raise RunDataFormatError(f"Invalid number for {label}: {value!r}")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise RunDataFormatError(f"Invalid number for {label}: {value!r}") from exc
    if math.isnan(number):
        return None
    return number


def _parse_enum(enum_cls, value: object, label: str):
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise RunDataFormatError(
            f"Unknown status {value!r} for {label} (expected one of: {allowed})"
        ) from exc


def _require(doc: Mapping[str, Any], fields: Tuple[str, ...], label: str) -> None:
    missing = [f for f in fields if _is_blank(doc.get(f))]
    if missing:
        raise RunDataFormatError(f"{label} missing fields: {', '.join(missing)}")


def parse_location(doc: object, label: str) -> LocationPoint:
    if not isinstance(doc, Mapping):
        raise RunDataFormatError(f"{label} is not an object")
    latitude = _parse_float(doc.get("latitude"), f"{label} latitude")
    longitude = _parse_float(doc.get("longitude"), f"{label} longitude")
    timestamp = _parse_timestamp(doc.get("timestamp"), f"{label} timestamp")
    if latitude is None or longitude is None or timestamp is None:
        raise RunDataFormatError(f"{label} needs latitude, longitude and timestamp")
    if not -90.0 <= latitude <= 90.0 or not -180.0 <= longitude <= 180.0:
        raise RunDataFormatError(
            f"{label} has out-of-range coordinates ({latitude}, {longitude})"
        )
    return LocationPoint(latitude=latitude, longitude=longitude, timestamp=timestamp)


def parse_stop(doc: object, label: str) -> Stop:
    if not isinstance(doc, Mapping):
        raise RunDataFormatError(f"{label} is not an object")
    name = doc.get("name")
    if _is_blank(name):
        raise RunDataFormatError(f"{label} missing name")
    arrival = _parse_timestamp(doc.get("arrivalTime"), f"{label} arrivalTime")
    departure = _parse_timestamp(doc.get("departureTime"), f"{label} departureTime")
    if arrival is not None and departure is not None and departure < arrival:
        LOGGER.warning(
            "%s departs (%s) before it arrives (%s); ignoring departure",
            label,
            departure.isoformat(),
            arrival.isoformat(),
        )
        departure = None
    occupancy = _parse_float(doc.get("occupancy"), f"{label} occupancy")
    collected = doc.get("collected") or {}
    if not isinstance(collected, Mapping):
        raise RunDataFormatError(f"{label} collected must be an object")
    return Stop(
        name=str(name).strip(),
        status=_parse_enum(StopStatus, doc.get("status") or "PENDING", label),
        arrival_time=arrival,
        departure_time=departure,
        mileage_at_stop=_parse_float(doc.get("mileageAtStop"), f"{label} mileageAtStop"),
        occupancy=int(occupancy) if occupancy is not None else None,
        collected=tuple(sorted(collected.items())),
    )


def parse_run(doc: object, index: int = 0) -> Run:
    """Build a :class:`Run` from one run document."""

    label = f"run #{index + 1}"
    if not isinstance(doc, Mapping):
        raise RunDataFormatError(f"{label} is not an object")
    _require(doc, _REQUIRED_RUN_FIELDS, label)
    run_id = str(doc["id"])
    label = f"run '{run_id}'"
    start_time = _parse_timestamp(doc["startTime"], f"{label} startTime")
    if start_time is None:
        raise RunDataFormatError(f"{label} missing fields: startTime")
    stops_doc = doc.get("stops") or []
    history_doc = doc.get("locationHistory") or []
    if not isinstance(stops_doc, list) or not isinstance(history_doc, list):
        raise RunDataFormatError(f"{label} stops and locationHistory must be lists")
    return Run(
        id=run_id,
        driver_id=str(doc["driverId"]),
        driver_name=str(doc.get("driverName") or ""),
        vehicle_id=str(doc["vehicleId"]),
        start_mileage=_parse_float(doc.get("startMileage"), f"{label} startMileage"),
        start_time=start_time,
        end_mileage=_parse_float(doc.get("endMileage"), f"{label} endMileage"),
        end_time=_parse_timestamp(doc.get("endTime"), f"{label} endTime"),
        status=_parse_enum(RunStatus, doc.get("status") or "IN_PROGRESS", label),
        stops=tuple(
            parse_stop(stop, f"{label} stop #{i + 1}")
            for i, stop in enumerate(stops_doc)
        ),
        location_history=tuple(
            parse_location(point, f"{label} location #{i + 1}")
            for i, point in enumerate(history_doc)
        ),
    )


def parse_driver(doc: object, index: int = 0) -> Driver:
    label = f"driver #{index + 1}"
    if not isinstance(doc, Mapping):
        raise RunDataFormatError(f"{label} is not an object")
    _require(doc, _REQUIRED_DRIVER_FIELDS, label)
    shift = doc.get("shift")
    return Driver(
        id=str(doc["id"]),
        name=str(doc.get("name") or ""),
        shift=None if _is_blank(shift) else str(shift).strip(),
    )


def _assert_file_exists(path: str | Path) -> None:
    if not Path(path).is_file():
        raise FileNotFoundError(f"Run records not found: {path}")


def read_run_records(filepath: str | Path) -> Tuple[List[Run], Dict[str, Driver]]:
    """Read runs and drivers (indexed by id) from a JSON export."""

    _assert_file_exists(filepath)
    try:
        payload = json.loads(Path(filepath).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RunDataFormatError(f"Invalid JSON in {filepath}: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise RunDataFormatError(
            f"Expected an object with 'runs' and 'drivers' in {filepath}"
        )
    runs_doc = payload.get("runs") or []
    drivers_doc = payload.get("drivers") or []
    if not isinstance(runs_doc, list) or not isinstance(drivers_doc, list):
        raise RunDataFormatError("'runs' and 'drivers' must be lists")
    runs = [parse_run(doc, i) for i, doc in enumerate(runs_doc)]
    drivers = {d.id: d for d in (parse_driver(doc, i) for i, doc in enumerate(drivers_doc))}
    LOGGER.info("Loaded %d runs and %d drivers from %s", len(runs), len(drivers), filepath)
    return runs, drivers


__all__ = [
    "parse_driver",
    "parse_location",
    "parse_run",
    "parse_stop",
    "read_run_records",
]
