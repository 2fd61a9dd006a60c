import pytest

from driveiq.errors import TripStoreError
from driveiq.trip_store.payloads import (
    completion_payload,
    record_from_payload,
    record_to_payload,
    stats_from_payload,
)

from conftest import make_record, trip_payload


def test_record_from_service_payload():
    record = record_from_payload(trip_payload("t1", max_speed=88.6))
    assert record.id == "t1"
    assert record.start_time.tzinfo is not None
    assert record.max_speed == 89
    assert record.score == 96


def test_missing_fields_fall_back_to_defaults():
    record = record_from_payload(
        {"_id": 7, "start_time": "2025-03-01T08:00:00"}, device_id="dev-2"
    )
    assert record.id == "7"
    assert record.device_id == "dev-2"
    assert record.end_time is None
    assert record.score == 100
    assert record.distance_km == 0.0


@pytest.mark.parametrize(
    "payload",
    [None, [], {"start_time": "2025-03-01T08:00:00Z"}, {"id": "x", "start_time": "soon"}],
)
def test_invalid_payloads_rejected(payload):
    with pytest.raises(TripStoreError):
        record_from_payload(payload)


def test_local_form_keeps_identity_and_pending_flag():
    record = make_record("t1")
    record.pending_sync = True
    payload = record_to_payload(record)
    assert set(completion_payload(record)) < set(payload)
    assert payload["pending_sync"] is True
    assert record_from_payload(payload) == record


def test_stats_payload():
    stats = stats_from_payload({"total_trips": "3", "average_score": None})
    assert stats.total_trips == 3
    assert stats.average_score == 0.0
    with pytest.raises(TripStoreError):
        stats_from_payload("nope")
