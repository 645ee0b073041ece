"""Fleet route reconstruction package."""

from .main import main
from .models import AggregatedRun, Driver, LocationPoint, Run, Segment, Stop
from .errors import FleetRoutesError, ReportWriteError, RunDataFormatError

__all__ = [
    "main",
    "AggregatedRun",
    "Driver",
    "LocationPoint",
    "Run",
    "Segment",
    "Stop",
    "FleetRoutesError",
    "ReportWriteError",
    "RunDataFormatError",
]
