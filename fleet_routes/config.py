"""Central configuration for the fleet route reconstruction tool.

All values are constants imported by the rest of the package. Input/output
locations and report tuning can be overridden through environment variables
(optionally via a local `.env`). The route reconstruction thresholds are fixed.
"""

from __future__ import annotations

import importlib
import os


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _env_str(key: str, default: str) -> str:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Input/Output
# ---------------------------------------------------------------------------
# JSON export of run and driver records. Paths can be absolute or relative.
INPUT_FILE = _env_str("FLEET_INPUT_FILE", "fleet_runs.json")
OUTPUT_FILE = _env_str("FLEET_OUTPUT_FILE", "route_report")

# Append _YYYYMMDD_HHMMSS to the output name when True.
OUTPUT_FILE_TIMESTAMP_ENABLED = _env_bool("FLEET_OUTPUT_FILE_TIMESTAMP_ENABLED", True)

# Directory for per-journey HTML route maps. Empty disables map export.
ROUTE_MAP_DIR = os.getenv("FLEET_ROUTE_MAP_DIR", "")

# Log level used when the entry point configures logging.
LOG_LEVEL = _env_str("FLEET_LOG_LEVEL", "INFO").upper()


# ---------------------------------------------------------------------------
# Run aggregation
# ---------------------------------------------------------------------------
# IANA zone used to decide which calendar day a run belongs to.
FLEET_TIMEZONE = _env_str("FLEET_TIMEZONE", "UTC")

# Maximum number of aggregated runs kept in the memo cache.
AGGREGATE_CACHE_SIZE = max(1, _env_int("FLEET_AGGREGATE_CACHE_SIZE", 128))


# ---------------------------------------------------------------------------
# Route reconstruction (fixed)
# ---------------------------------------------------------------------------
# Largest plausible jump (km) between consecutive accepted GPS points.
OUTLIER_MAX_JUMP_KM = 5.0

# Minimum spacing (km) between points kept for the overview polyline.
SIMPLIFY_MIN_SPACING_KM = 0.02

# Segment colors, cycled by segment position.
SEGMENT_PALETTE = (
    "#3b82f6",
    "#ef4444",
    "#10b981",
    "#f97316",
    "#8b5cf6",
    "#ec4899",
    "#6366f1",
    "#f59e0b",
    "#14b8a6",
    "#d946ef",
)

# Color of the live "current position" leg.
CURRENT_SEGMENT_COLOR = "#71717a"

# Segment opacity with no highlight, for the highlighted segment, and for the rest.
DEFAULT_SEGMENT_OPACITY = 0.9
HIGHLIGHTED_SEGMENT_OPACITY = 1.0
DIMMED_SEGMENT_OPACITY = 0.3


# ---------------------------------------------------------------------------
# Excel formatting
# ---------------------------------------------------------------------------
# Automatically size columns after writing each sheet (openpyxl only).
EXCEL_AUTOSIZE_COLUMNS = _env_bool("EXCEL_AUTOSIZE_COLUMNS", True)
EXCEL_AUTOSIZE_MAX_WIDTH = 50  # characters
EXCEL_AUTOSIZE_MIN_WIDTH = 6  # characters
EXCEL_AUTOSIZE_PADDING = 2  # extra characters added to the detected max
EXCEL_AUTOSIZE_MAX_ROWS = (
    5000  # skip autosize for very large sheets (performance guard)
)
