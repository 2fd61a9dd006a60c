"""Central error types used across the application."""

from __future__ import annotations


class DriveIQError(RuntimeError):
    """Base error for DriveIQ failures."""


class TripFinalizedError(DriveIQError):
    """Raised when a finished trip receives further samples or a second finalize."""


class LocationSourceError(DriveIQError):
    """Raised when a recorded track cannot be read."""


class TripStoreError(DriveIQError):
    """Base error for trip service and local store failures."""


class TripNotFoundError(TripStoreError):
    """Raised when a trip does not exist."""


__all__ = [
    "DriveIQError",
    "TripFinalizedError",
    "LocationSourceError",
    "TripStoreError",
    "TripNotFoundError",
]
