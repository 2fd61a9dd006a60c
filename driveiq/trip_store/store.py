"""Trip store facade: remote service first, local store as fallback.

A finished trip is never lost: when the remote write fails the record is kept
locally as pending and :meth:`TripStore.sync_pending` pushes it later. Trips
that could not even be opened remotely get a ``local-`` id and are created on
the service during sync.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, tzinfo
from typing import Dict, List

from .. import history
from ..errors import TripNotFoundError, TripStoreError
from ..models import DriverStats, TripRecord
from .local import LocalTripStore
from .rest import RestTripStore

LOCAL_ID_PREFIX = "local-"


def is_local_id(trip_id: str) -> bool:
    return trip_id.startswith(LOCAL_ID_PREFIX)


class TripStore:
    """Persist and query trips with store-and-forward semantics."""

    def __init__(
        self, local: LocalTripStore, remote: RestTripStore | None = None
    ) -> None:
        self._local = local
        self._remote = remote
        self._log = logging.getLogger(self.__class__.__name__)

    @property
    def local(self) -> LocalTripStore:
        return self._local

    @property
    def remote(self) -> RestTripStore | None:
        return self._remote

    def start_trip(self, device_id: str, start_time: datetime) -> str:
        """Return the id to record the trip under."""

        if self._remote is not None:
            try:
                return self._remote.create_trip(device_id, start_time)
            except TripStoreError as exc:
                self._log.warning(
                    "Remote trip creation failed for device=%s; using a local id: %s",
                    device_id,
                    exc,
                )
        return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}"

    def save_trip(self, record: TripRecord) -> TripRecord:
        """Persist a finished trip; falls back to a pending local copy."""

        if self._remote is not None and not is_local_id(record.id):
            try:
                stored = self._remote.complete_trip(record)
            except TripStoreError as exc:
                self._log.warning(
                    "Remote save failed for trip %s; kept locally for sync: %s",
                    record.id,
                    exc,
                )
            else:
                return self._local.save(stored, pending=False)
        elif self._remote is not None:
            self._log.info("Trip %s has no remote id yet; kept locally for sync", record.id)
        return self._local.save(record, pending=self._remote is not None)

    def sync_pending(self) -> int:
        """Push pending local trips to the service; returns how many synced."""

        if self._remote is None:
            return 0
        pending = self._local.pending()
        synced = 0
        for record in pending:
            try:
                if is_local_id(record.id):
                    self._adopt_remote_id(self._remote, record)
                stored = self._remote.complete_trip(record)
            except TripStoreError as exc:
                self._log.warning("Sync of trip %s failed: %s", record.id, exc)
                continue
            self._local.mark_synced(stored, previous_id=record.id)
            synced += 1
        if pending:
            self._log.info("Synced %d of %d pending trips", synced, len(pending))
        return synced

    def _adopt_remote_id(self, remote: RestTripStore, record: TripRecord) -> None:
        # Re-key the pending copy first so a failed completion is not
        # followed by a second remote trip on the next sync.
        local_id = record.id
        record.id = remote.create_trip(record.device_id, record.start_time)
        self._local.save(record, pending=True)
        self._local.delete(local_id)
        self._log.info("Pending trip %s now recorded as %s", local_id, record.id)

    def list_trips(
        self,
        device_id: str,
        *,
        on_date: date | None = None,
        tz: tzinfo | None = None,
    ) -> List[TripRecord]:
        """Device history, newest first, including trips awaiting sync."""

        local_records = self._local.list_trips(device_id)
        records: Dict[str, TripRecord]
        if self._remote is None:
            records = {record.id: record for record in local_records}
        else:
            try:
                remote_records = self._remote.list_device_trips(device_id)
            except TripStoreError as exc:
                self._log.warning(
                    "Remote history unavailable for device=%s; using local copies: %s",
                    device_id,
                    exc,
                )
                records = {record.id: record for record in local_records}
            else:
                records = {record.id: record for record in remote_records}
                for record in local_records:
                    if record.pending_sync:
                        records[record.id] = record
        return history.filter_trips(records.values(), on_date=on_date, tz=tz)

    def get_trip(self, trip_id: str) -> TripRecord:
        local_record = self._local.get(trip_id)
        if self._remote is None or is_local_id(trip_id):
            if local_record is None:
                raise TripNotFoundError(f"Trip {trip_id} not found")
            return local_record
        if local_record is not None and local_record.pending_sync:
            return local_record
        try:
            return self._remote.get_trip(trip_id)
        except TripNotFoundError:
            raise
        except TripStoreError as exc:
            if local_record is None:
                raise
            self._log.warning(
                "Remote lookup of trip %s failed; using local copy: %s", trip_id, exc
            )
            return local_record

    def delete_trip(self, trip_id: str) -> bool:
        """Delete a trip everywhere; False when it was not found anywhere."""

        local_record = self._local.get(trip_id)
        found = False
        if self._remote is not None and not is_local_id(trip_id):
            device_id = local_record.device_id if local_record else None
            try:
                self._remote.delete_trip(trip_id, device_id=device_id)
                found = True
            except TripNotFoundError:
                self._log.info("Trip %s already absent remotely", trip_id)
        if self._local.delete(trip_id):
            found = True
        return found

    def driver_stats(self, device_id: str) -> DriverStats:
        """Aggregate stats; asks the service when nothing is awaiting sync."""

        has_pending = any(
            record.pending_sync for record in self._local.list_trips(device_id)
        )
        if self._remote is not None and not has_pending:
            try:
                return self._remote.get_stats(device_id)
            except TripStoreError as exc:
                self._log.warning(
                    "Remote stats unavailable for device=%s; computing locally: %s",
                    device_id,
                    exc,
                )
        return history.driver_stats(self.list_trips(device_id))


__all__ = ["LOCAL_ID_PREFIX", "TripStore", "is_local_id"]
