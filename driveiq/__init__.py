"""DriveIQ trip telemetry: scoring, live feed and trip history."""

from .aggregator import create, finalize, update
from .errors import (
    DriveIQError,
    LocationSourceError,
    TripFinalizedError,
    TripNotFoundError,
    TripStoreError,
)
from .feed import TripFeed
from .main import main
from .models import (
    DriverStats,
    LocationSample,
    TripEvent,
    TripEventKind,
    TripRecord,
    TripSummary,
)
from .trip_store import LocalTripStore, RestTripStore, TripStore

__all__ = [
    "main",
    "create",
    "update",
    "finalize",
    "TripFeed",
    "LocationSample",
    "TripEvent",
    "TripEventKind",
    "TripSummary",
    "TripRecord",
    "DriverStats",
    "TripStore",
    "LocalTripStore",
    "RestTripStore",
    "DriveIQError",
    "TripFinalizedError",
    "LocationSourceError",
    "TripStoreError",
    "TripNotFoundError",
]
