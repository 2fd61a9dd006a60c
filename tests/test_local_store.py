import json

from driveiq.trip_store import LocalTripStore

from conftest import make_record


def test_save_and_reload(tmp_path):
    store = LocalTripStore(tmp_path)
    record = make_record("t1", hard_brakes=3)
    store.save(record, pending=True)

    loaded = LocalTripStore(tmp_path).get("t1")
    assert loaded == record
    assert loaded.pending_sync is True
    assert loaded.start_time.tzinfo is not None


def test_file_names_are_hashed_and_writes_atomic(tmp_path):
    store = LocalTripStore(tmp_path)
    store.save(make_record("a/b:c"), pending=False)
    files = list(tmp_path.iterdir())
    assert len(files) == 1
    assert files[0].suffix == ".json"
    assert "/" not in files[0].stem and len(files[0].stem) == 64
    payload = json.loads(files[0].read_text(encoding="utf-8"))
    assert payload["record"]["id"] == "a/b:c"
    assert "saved_at" in payload


def test_pending_and_mark_synced(tmp_path):
    store = LocalTripStore(tmp_path)
    store.save(make_record("local-1"), pending=True)
    store.save(make_record("t2"), pending=False)
    assert [r.id for r in store.pending()] == ["local-1"]

    synced = make_record("remote-1")
    store.mark_synced(synced, previous_id="local-1")
    assert store.pending() == []
    assert store.get("local-1") is None
    assert store.get("remote-1").pending_sync is False


def test_list_by_device_and_delete(tmp_path):
    store = LocalTripStore(tmp_path)
    store.save(make_record("t1", device_id="a"), pending=False)
    store.save(make_record("t2", device_id="b"), pending=False)
    assert [r.id for r in store.list_trips("a")] == ["t1"]
    assert len(store.list_trips()) == 2
    assert store.delete("t1") is True
    assert store.delete("t1") is False


def test_corrupt_file_is_ignored(tmp_path, caplog):
    store = LocalTripStore(tmp_path)
    store.save(make_record("t1"), pending=False)
    (tmp_path / "garbage.json").write_text("{not json", encoding="utf-8")
    assert [r.id for r in store.list_trips()] == ["t1"]
    assert "Failed reading trip file" in caplog.text
