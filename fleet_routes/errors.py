"""Central error types used across the application."""

from __future__ import annotations


class FleetRoutesError(RuntimeError):
    """Base error for fleet route failures at the I/O edges."""


class RunDataFormatError(FleetRoutesError):
    """Raised when a run or driver record is missing fields or malformed."""


class ReportWriteError(FleetRoutesError):
    """Raised when the Excel route report cannot be written."""


__all__ = [
    "FleetRoutesError",
    "RunDataFormatError",
    "ReportWriteError",
]
