"""Safety score, grade labels and presentation rounding."""

from __future__ import annotations

from .models import TripRecord, TripSummary
from .utils import round_half_up, round_to

MAX_SCORE = 100
HARD_BRAKE_PENALTY = 4
HARD_ACCEL_PENALTY = 4
SPEEDING_PENALTY = 8


def compute_score(hard_brakes: int, hard_accels: int, speeding: int) -> int:
    """Return the 0-100 trip score; penalties only ever lower it."""

    score = (
        MAX_SCORE
        - HARD_BRAKE_PENALTY * hard_brakes
        - HARD_ACCEL_PENALTY * hard_accels
        - SPEEDING_PENALTY * speeding
    )
    return max(0, min(MAX_SCORE, int(score)))


def score_grade(score: float) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 80:
        return "Good"
    if score >= 60:
        return "Fair"
    return "Needs Improvement"


def driver_grade(average_score: float) -> str:
    if average_score >= 90:
        return "Excellent Driver"
    if average_score >= 80:
        return "Good Driver"
    if average_score >= 60:
        return "Average Driver"
    return "Needs Improvement"


def score_band(score: float) -> str:
    """Colour band used by displays: good, fair or poor."""

    if score >= 80:
        return "good"
    if score >= 60:
        return "fair"
    return "poor"


def format_duration(minutes: float) -> str:
    """Format a duration as ``"12 min"`` or ``"1h 5m"``."""

    if minutes < 60:
        return f"{round_half_up(minutes)} min"
    hours = int(minutes // 60)
    mins = round_half_up(minutes % 60)
    return f"{hours}h {mins}m"


def to_trip_record(summary: TripSummary, trip_id: str, device_id: str) -> TripRecord:
    """Round a full-precision summary into the stored trip shape.

    Distance and duration keep 2 decimals, average speed 1 decimal and max
    speed a whole number.
    """

    return TripRecord(
        id=trip_id,
        device_id=device_id,
        start_time=summary.start_time,
        end_time=summary.end_time,
        distance_km=round_to(summary.distance_km, 2),
        duration_minutes=round_to(summary.duration_minutes, 2),
        max_speed=int(summary.max_speed_kmh),
        avg_speed=round_to(summary.avg_speed_kmh, 1),
        hard_brakes=summary.hard_brake_count,
        hard_accelerations=summary.hard_accel_count,
        speeding_count=summary.speeding_count,
        score=summary.score,
    )


__all__ = [
    "compute_score",
    "driver_grade",
    "format_duration",
    "score_band",
    "score_grade",
    "to_trip_record",
]
