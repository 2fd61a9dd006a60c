"""Validation of trip service JSON at the store boundary.

Everything leaving this module is a typed :class:`TripRecord` or
:class:`DriverStats`; untyped payloads never reach the rest of the package.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping

from ..errors import TripStoreError
from ..models import DriverStats, TripRecord
from ..utils import parse_iso_datetime, to_utc_aware


def _coerce_int(value: Any, default: int = 0) -> int:
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return default


def _coerce_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _coerce_datetime(value: Any) -> datetime | None:
    parsed = parse_iso_datetime(value)
    return to_utc_aware(parsed) if parsed is not None else None


def record_from_payload(
    payload: Any, *, device_id: str | None = None
) -> TripRecord:
    """Build a :class:`TripRecord` from a trip service object."""

    if not isinstance(payload, Mapping):
        raise TripStoreError(
            f"Expected a trip object, got {type(payload).__name__}"
        )
    trip_id = payload.get("id") or payload.get("_id")
    if trip_id in (None, ""):
        raise TripStoreError("Trip payload is missing 'id'")
    start_time = _coerce_datetime(payload.get("start_time"))
    if start_time is None:
        raise TripStoreError(f"Trip {trip_id} has no valid 'start_time'")
    return TripRecord(
        id=str(trip_id),
        device_id=str(payload.get("device_id") or device_id or ""),
        start_time=start_time,
        end_time=_coerce_datetime(payload.get("end_time")),
        distance_km=_coerce_float(payload.get("distance_km")),
        duration_minutes=_coerce_float(payload.get("duration_minutes")),
        max_speed=_coerce_int(payload.get("max_speed")),
        avg_speed=_coerce_float(payload.get("avg_speed")),
        hard_brakes=_coerce_int(payload.get("hard_brakes")),
        hard_accelerations=_coerce_int(payload.get("hard_accelerations")),
        speeding_count=_coerce_int(payload.get("speeding_count")),
        score=_coerce_int(payload.get("score"), default=100),
        pending_sync=bool(payload.get("pending_sync", False)),
    )


def completion_payload(record: TripRecord) -> Dict[str, Any]:
    """Body of the ``PUT /api/trips/{id}`` call that closes a trip."""

    return {
        "end_time": record.end_time.isoformat() if record.end_time else None,
        "distance_km": record.distance_km,
        "duration_minutes": record.duration_minutes,
        "max_speed": record.max_speed,
        "avg_speed": record.avg_speed,
        "hard_brakes": record.hard_brakes,
        "hard_accelerations": record.hard_accelerations,
        "speeding_count": record.speeding_count,
        "score": record.score,
    }


def record_to_payload(record: TripRecord) -> Dict[str, Any]:
    """Full JSON form used by the local store."""

    payload = completion_payload(record)
    payload.update(
        {
            "id": record.id,
            "device_id": record.device_id,
            "start_time": record.start_time.isoformat(),
            "pending_sync": record.pending_sync,
        }
    )
    return payload


def stats_from_payload(payload: Any) -> DriverStats:
    if not isinstance(payload, Mapping):
        raise TripStoreError(
            f"Expected a stats object, got {type(payload).__name__}"
        )
    return DriverStats(
        total_trips=_coerce_int(payload.get("total_trips")),
        total_distance=_coerce_float(payload.get("total_distance")),
        average_score=_coerce_float(payload.get("average_score")),
        best_score=_coerce_int(payload.get("best_score")),
    )


__all__ = [
    "completion_payload",
    "record_from_payload",
    "record_to_payload",
    "stats_from_payload",
]
