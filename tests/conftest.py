"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable sample, record and HTTP
response factories for aggregator, feed and trip store tests.
"""
from __future__ import annotations

import json
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from driveiq.models import LocationSample, TripRecord

T0 = datetime(2025, 3, 1, 8, 0, 0, tzinfo=timezone.utc)
KMH = 1 / 3.6  # multiply a km/h figure to get m/s


# --- Factory helpers -------------------------------------------------
def make_sample(seconds=0, lat=52.0, lon=13.0, speed_kmh=None):
    speed = None if speed_kmh is None else speed_kmh * KMH
    return LocationSample(
        timestamp=T0 + timedelta(seconds=seconds),
        latitude=lat,
        longitude=lon,
        speed_mps=speed,
    )


def make_speed_trace(speeds_kmh, lat=52.0, lon=13.0):
    """One fix per second at a fixed position with the given km/h speeds."""
    return [
        make_sample(seconds=i, lat=lat, lon=lon, speed_kmh=speed)
        for i, speed in enumerate(speeds_kmh)
    ]


def make_record(trip_id="t1", device_id="dev-1", start=None, score=100, distance=10.0, **kwargs):
    start = start or T0
    return TripRecord(
        id=trip_id,
        device_id=device_id,
        start_time=start,
        end_time=start + timedelta(minutes=20),
        distance_km=distance,
        duration_minutes=20.0,
        max_speed=kwargs.pop("max_speed", 90),
        avg_speed=kwargs.pop("avg_speed", 45.5),
        score=score,
        **kwargs,
    )


def trip_payload(trip_id="abc", device_id="dev-1", start="2025-03-01T08:00:00Z", **extra):
    payload = {
        "id": trip_id,
        "device_id": device_id,
        "start_time": start,
        "end_time": "2025-03-01T08:20:00Z",
        "distance_km": 12.34,
        "duration_minutes": 20.0,
        "max_speed": 88,
        "avg_speed": 37.2,
        "hard_brakes": 1,
        "hard_accelerations": 0,
        "speeding_count": 0,
        "score": 96,
    }
    payload.update(extra)
    return payload


class FakeResp:
    """Minimal fake response matching needed parts of requests.Response."""

    def __init__(self, status_code=200, data=None, headers=None, text=None):
        self.status_code = status_code
        self._data = data
        self._text = text
        self.headers = headers or {}
        self.url = "http://trips.test"

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data

    @property
    def text(self):
        if self._text is not None:
            return self._text
        if self._data is None:
            return ""
        return json.dumps(self._data)

    @property
    def content(self):
        return self.text.encode()


class FakeSession:
    """Records calls and replays queued responses (or raises queued errors)."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def request(self, method, url, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "json": json, "timeout": timeout})
        if not self.responses:
            raise AssertionError(f"Unexpected request {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    """Retry backoff must not slow the suite down."""
    import driveiq.trip_store.rest as rest

    monkeypatch.setattr(rest.time, "sleep", lambda _seconds: None)
