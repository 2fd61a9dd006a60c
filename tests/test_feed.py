"""TripFeed: serialized intake from concurrent sample sources."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta

import pytest

from driveiq.errors import DriveIQError, TripFinalizedError
from driveiq.feed import BACKGROUND, FOREGROUND, TripFeed
from driveiq.models import TripEventKind
from driveiq.sources import read_csv_samples

from conftest import T0, make_sample, make_speed_trace


def test_feed_summary_matches_sequential_updates():
    feed = TripFeed(T0, name="seq")
    for sample in make_speed_trace([0, 20, 0, 125, 131, 125, 131, 110, 120, 100]):
        feed.submit(sample)
    summary = feed.stop(T0 + timedelta(minutes=10))

    assert summary.score == 64
    assert summary.duration_minutes == pytest.approx(10.0)
    kinds = [event.kind for event in feed.events()]
    assert kinds.count(TripEventKind.SPEEDING) == 2


def test_samples_from_two_threads_are_each_applied_once():
    feed = TripFeed(T0, name="threads")
    per_source = 200
    barrier = threading.Barrier(2)

    def pump(source, offset):
        barrier.wait()
        for i in range(per_source):
            feed.submit(make_sample(seconds=offset + i, speed_kmh=30), source=source)

    threads = [
        threading.Thread(target=pump, args=(FOREGROUND, 0)),
        threading.Thread(target=pump, args=(BACKGROUND, per_source)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    feed.stop(T0 + timedelta(seconds=2 * per_source))
    snap = feed.snapshot()
    assert snap.samples == 2 * per_source
    assert snap.samples_by_source == {FOREGROUND: per_source, BACKGROUND: per_source}
    # constant speed after the initial ramp: exactly one hard acceleration
    assert snap.hard_accelerations == 1


def test_listener_failure_is_logged_and_intake_continues(caplog):
    received = []

    def broken(_event):
        raise RuntimeError("display gone")

    feed = TripFeed(T0, on_event=broken, name="listeners")
    feed.add_listener(received.append)
    with caplog.at_level(logging.ERROR, logger="TripFeed"):
        for sample in make_speed_trace([40, 0, 40]):
            feed.submit(sample)
        summary = feed.stop(T0 + timedelta(seconds=3))

    assert len(received) == 3
    assert summary.hard_brake_count == 1
    assert summary.hard_accel_count == 2
    assert "event listener failed" in caplog.text


def test_submit_after_stop_raises():
    feed = TripFeed(T0)
    feed.stop(T0)
    with pytest.raises(TripFinalizedError):
        feed.submit(make_sample())


def test_stop_twice_raises():
    feed = TripFeed(T0)
    feed.stop(T0)
    with pytest.raises(TripFinalizedError):
        feed.stop(T0)


def test_abandon_discards_trip():
    feed = TripFeed(T0)
    feed.submit(make_sample(speed_kmh=50))
    feed.abandon()
    assert feed.closed
    with pytest.raises(TripFinalizedError):
        feed.stop(T0)


def test_failed_sample_is_logged_and_stop_reports_it(monkeypatch, caplog):
    import driveiq.feed as feed_module

    real_update = feed_module.aggregator.update

    def flaky_update(acc, sample):
        if sample.timestamp == T0 + timedelta(seconds=1):
            raise ValueError("corrupt fix")
        return real_update(acc, sample)

    monkeypatch.setattr(feed_module.aggregator, "update", flaky_update)
    feed = TripFeed(T0, name="flaky")
    with caplog.at_level(logging.ERROR, logger="TripFeed"):
        for sample in make_speed_trace([10, 10, 10, 10]):
            feed.submit(sample)
        with pytest.raises(DriveIQError, match="lost 1 sample"):
            feed.stop(T0 + timedelta(seconds=4))

    snap = feed.snapshot()
    assert snap.samples == 3
    assert snap.failed_samples == 1
    assert "dropped foreground sample" in caplog.text


def test_infinite_speed_from_track_is_applied(tmp_path):
    path = tmp_path / "inf.csv"
    path.write_text(
        "timestamp,latitude,longitude,speed\n"
        + "".join(
            f"2025-03-01T08:00:0{i}Z,52.0,13.0,{speed}\n"
            for i, speed in enumerate(["10", "inf", "10", "10", "40"])
        ),
        encoding="utf-8",
    )
    samples = read_csv_samples(path)
    feed = TripFeed(samples[0].timestamp, name="inf")
    for sample in samples:
        feed.submit(sample)
    summary = feed.stop(samples[-1].timestamp)

    assert feed.snapshot().samples == 5
    assert feed.snapshot().failed_samples == 0
    # 0->36, 0->36 and 36->144 are accelerations; 36->0 is a brake
    assert summary.hard_accel_count == 3
    assert summary.hard_brake_count == 1
    assert summary.speeding_count == 1
