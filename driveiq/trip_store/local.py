"""On-disk trip store used as the fallback when the trip service is unreachable.

Each trip is one JSON file named by a hash of its id. Records written while
the service was failing carry ``pending_sync`` until a later sync succeeds;
synced copies are kept as an offline history.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from hashlib import sha256
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import TripStoreError
from ..models import TripRecord
from .payloads import record_from_payload, record_to_payload

_LOGGER = logging.getLogger(__name__)


class LocalTripStore:
    """Persistent store for trip records on the local filesystem."""

    def __init__(self, directory: str | Path) -> None:
        base = Path(directory)
        self._base_dir = base if base.is_absolute() else Path.cwd() / base
        self._lock = threading.Lock()
        self._base_dir.mkdir(parents=True, exist_ok=True)
        _LOGGER.debug("Local trip store dir=%s", self._base_dir)

    @property
    def directory(self) -> Path:
        return self._base_dir

    def _file_path(self, trip_id: str) -> Path:
        # sha256 keeps file names safe whatever characters the service uses
        signature = sha256(trip_id.encode("utf-8")).hexdigest()
        return self._base_dir / f"{signature}.json"

    def _read_file(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            _LOGGER.error("Failed reading trip file %s: %s", path, exc)
            return None

    def _write_file(self, path: Path, payload: Dict[str, Any]) -> None:
        temp_path = path.with_suffix(".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=True, indent=2)
            temp_path.replace(path)
        except OSError as exc:
            raise TripStoreError(f"Unable to write trip file {path}: {exc}") from exc

    def _load_record(self, path: Path) -> Optional[TripRecord]:
        payload = self._read_file(path)
        if payload is None:
            return None
        try:
            return record_from_payload(payload.get("record"))
        except TripStoreError as exc:
            _LOGGER.error("Ignoring malformed trip file %s: %s", path, exc)
            return None

    def save(self, record: TripRecord, *, pending: bool) -> TripRecord:
        """Persist ``record``; ``pending`` marks it for a later remote sync."""

        record.pending_sync = pending
        payload = {
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "record": record_to_payload(record),
        }
        path = self._file_path(record.id)
        with self._lock:
            self._write_file(path, payload)
        _LOGGER.debug("Stored trip %s pending=%s path=%s", record.id, pending, path)
        return record

    def get(self, trip_id: str) -> Optional[TripRecord]:
        return self._load_record(self._file_path(trip_id))

    def list_trips(self, device_id: str | None = None) -> List[TripRecord]:
        records: List[TripRecord] = []
        for path in sorted(self._base_dir.glob("*.json")):
            record = self._load_record(path)
            if record is None:
                continue
            if device_id is not None and record.device_id != device_id:
                continue
            records.append(record)
        return records

    def pending(self) -> List[TripRecord]:
        return [record for record in self.list_trips() if record.pending_sync]

    def mark_synced(self, record: TripRecord, *, previous_id: str | None = None) -> None:
        """Store ``record`` as synced, dropping the file of a replaced local id."""

        self.save(record, pending=False)
        if previous_id and previous_id != record.id:
            self.delete(previous_id)

    def delete(self, trip_id: str) -> bool:
        path = self._file_path(trip_id)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
        return True


__all__ = ["LocalTripStore"]
