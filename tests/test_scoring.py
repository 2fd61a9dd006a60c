import pytest

from driveiq.scoring import (
    compute_score,
    driver_grade,
    format_duration,
    score_band,
    score_grade,
    to_trip_record,
)
from driveiq.models import TripSummary

from conftest import T0


@pytest.mark.parametrize(
    "counts, expected",
    [
        ((0, 0, 0), 100),
        ((1, 0, 0), 96),
        ((0, 1, 0), 96),
        ((0, 0, 1), 92),
        ((3, 2, 2), 64),
        ((10, 10, 10), 0),
    ],
)
def test_compute_score(counts, expected):
    assert compute_score(*counts) == expected


@pytest.mark.parametrize(
    "score, grade",
    [(100, "Excellent"), (90, "Excellent"), (89, "Good"), (80, "Good"), (79, "Fair"), (60, "Fair"), (59, "Needs Improvement")],
)
def test_score_grade_thresholds(score, grade):
    assert score_grade(score) == grade


def test_driver_grade_and_band():
    assert driver_grade(92.5) == "Excellent Driver"
    assert driver_grade(85.0) == "Good Driver"
    assert driver_grade(60.0) == "Average Driver"
    assert driver_grade(12.0) == "Needs Improvement"
    assert [score_band(s) for s in (95, 80, 79, 60, 59)] == ["good", "good", "fair", "fair", "poor"]


def test_format_duration():
    assert format_duration(0) == "0 min"
    assert format_duration(12.4) == "12 min"
    assert format_duration(60) == "1h 0m"
    assert format_duration(125.2) == "2h 5m"


def test_to_trip_record_rounds_for_storage():
    summary = TripSummary(
        start_time=T0,
        end_time=T0,
        duration_minutes=12.3456,
        distance_km=7.891234,
        max_speed_kmh=97,
        avg_speed_kmh=38.3333,
        hard_brake_count=1,
        hard_accel_count=2,
        speeding_count=0,
        score=88,
    )
    record = to_trip_record(summary, "trip-9", "dev-1")
    assert record.id == "trip-9"
    assert record.device_id == "dev-1"
    assert record.distance_km == 7.89
    assert record.duration_minutes == 12.35
    assert record.avg_speed == 38.3
    assert record.max_speed == 97
    assert (record.hard_brakes, record.hard_accelerations, record.speeding_count) == (1, 2, 0)
    assert record.score == 88
    assert record.pending_sync is False


def test_display_rounding_sends_halves_up():
    assert format_duration(2.5) == "3 min"
    assert format_duration(60.5) == "1h 1m"
    summary = TripSummary(
        start_time=T0,
        end_time=T0,
        duration_minutes=0.125,
        distance_km=0.125,
        max_speed_kmh=0,
        avg_speed_kmh=0.25,
        hard_brake_count=0,
        hard_accel_count=0,
        speeding_count=0,
        score=100,
    )
    record = to_trip_record(summary, "t", "d")
    assert record.distance_km == 0.13
    assert record.duration_minutes == 0.13
    assert record.avg_speed == 0.3
