"""Central configuration for the DriveIQ trip telemetry tools.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Deployment-specific values are read from environment
variables (optionally via a local `.env`).
"""

from __future__ import annotations

import os

from dotenv import load_dotenv


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


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


# Load .env from the current directory or any parent folder.
load_dotenv()


# ---------------------------------------------------------------------------
# Trip service
# ---------------------------------------------------------------------------
# Base URL of the remote trip service. Empty means "local store only".
BACKEND_URL = os.getenv("DRIVEIQ_BACKEND_URL", "").rstrip("/")

# Opaque device identifier used when the CLI is not given --device.
DEVICE_ID = os.getenv("DRIVEIQ_DEVICE_ID", "")

# Directory (absolute or relative) holding locally persisted trips. Trips land
# here when the remote write fails and stay flagged as pending until synced.
LOCAL_STORE_DIR = os.getenv("DRIVEIQ_LOCAL_STORE_DIR", "driveiq_trips")


# ---------------------------------------------------------------------------
# HTTP behaviour
# ---------------------------------------------------------------------------
# Request timeout in seconds.
REQUEST_TIMEOUT = _env_int("REQUEST_TIMEOUT", 15)

# HTTP session pool sizes.
HTTP_POOL_CONNECTIONS = 4
HTTP_POOL_MAXSIZE = 4

# Retry/backoff behaviour for trip service calls.
# TRIP_STORE_MAX_RETRIES covers network failures, 429 and 5xx responses.
TRIP_STORE_MAX_RETRIES = _env_int("TRIP_STORE_MAX_RETRIES", 3)
# TRIP_STORE_BACKOFF_MAX_SECONDS caps the exponential backoff per attempt.
TRIP_STORE_BACKOFF_MAX_SECONDS = _env_float("TRIP_STORE_BACKOFF_MAX_SECONDS", 4.0)

# Seconds a fetched device history stays cached. Set to 0 to disable.
HISTORY_CACHE_TTL_SECONDS = _env_int("HISTORY_CACHE_TTL_SECONDS", 30)
HISTORY_CACHE_SIZE = _env_int("HISTORY_CACHE_SIZE", 64)


# ---------------------------------------------------------------------------
# Trip feed
# ---------------------------------------------------------------------------
# Seconds stop() waits for the feed worker to drain queued samples.
FEED_STOP_TIMEOUT_SECONDS = _env_float("FEED_STOP_TIMEOUT_SECONDS", 10.0)

# Log every classification event raised while tracking.
FEED_LOG_EVENTS = _env_bool("FEED_LOG_EVENTS", True)


# ---------------------------------------------------------------------------
# Excel report formatting
# ---------------------------------------------------------------------------
REPORT_COLUMN_ORDER = [
    "Date",
    "Start",
    "End",
    "Duration",
    "Distance (km)",
    "Max Speed (km/h)",
    "Avg Speed (km/h)",
    "Hard Brakes",
    "Hard Accelerations",
    "Speeding",
    "Score",
    "Grade",
]

# Automatically size columns after writing each sheet (openpyxl only).
EXCEL_AUTOSIZE_COLUMNS = True
EXCEL_AUTOSIZE_MAX_WIDTH = 50  # characters
EXCEL_AUTOSIZE_MIN_WIDTH = 6  # characters
EXCEL_AUTOSIZE_PADDING = 2  # extra characters added to the detected max
EXCEL_AUTOSIZE_MAX_ROWS = 5000  # skip autosize for very large sheets
