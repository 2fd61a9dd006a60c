from datetime import date, datetime, timedelta, timezone

from driveiq.history import driver_stats, filter_trips, today_score, trips_frame
from driveiq.models import DriverStats

from conftest import T0, make_record


def _records():
    return [
        make_record("a", start=T0, score=90, distance=10.0),
        make_record("b", start=T0 + timedelta(days=1), score=75, distance=5.5),
        make_record("c", start=T0 + timedelta(hours=2), score=82, distance=2.0),
        make_record("z", device_id="other", start=T0, score=10),
    ]


def test_filter_newest_first_by_device():
    kept = filter_trips(_records(), device_id="dev-1")
    assert [r.id for r in kept] == ["b", "c", "a"]


def test_filter_by_date_in_timezone():
    utc = timezone.utc
    kept = filter_trips(_records(), device_id="dev-1", on_date=date(2025, 3, 1), tz=utc)
    assert [r.id for r in kept] == ["c", "a"]
    # 08:00 UTC is the previous evening at UTC-10
    minus_ten = timezone(timedelta(hours=-10))
    kept = filter_trips(_records(), device_id="dev-1", on_date=date(2025, 2, 28), tz=minus_ten)
    assert [r.id for r in kept] == ["a"]


def test_filter_since():
    kept = filter_trips(_records(), since=T0 + timedelta(hours=1))
    assert [r.id for r in kept] == ["b", "c"]


def test_driver_stats():
    stats = driver_stats([r for r in _records() if r.device_id == "dev-1"])
    assert stats == DriverStats(
        total_trips=3, total_distance=17.5, average_score=82.3, best_score=90
    )


def test_driver_stats_empty():
    assert driver_stats([]) == DriverStats()


def test_today_score_rounds_half_up():
    records = [
        make_record("a", start=T0, score=90),
        make_record("b", start=T0 + timedelta(hours=1), score=81),
        make_record("c", start=T0 - timedelta(days=1), score=0),
    ]
    now = datetime(2025, 3, 1, 20, 0, tzinfo=timezone.utc)
    assert today_score(records, now, tz=timezone.utc) == 86
    assert today_score(records, now + timedelta(days=5), tz=timezone.utc) is None


def test_trips_frame_sorted():
    df = trips_frame(_records())
    assert list(df["id"])[:2] == ["b", "c"]
    assert trips_frame([]).empty
