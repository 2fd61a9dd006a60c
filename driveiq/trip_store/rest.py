"""REST client for the remote trip service."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from threading import RLock
from typing import Any, List, Optional

import requests
from cachetools import TTLCache

from ..config import (
    HISTORY_CACHE_SIZE,
    HISTORY_CACHE_TTL_SECONDS,
    REQUEST_TIMEOUT,
    TRIP_STORE_BACKOFF_MAX_SECONDS,
    TRIP_STORE_MAX_RETRIES,
)
from ..errors import TripStoreError
from ..models import DriverStats, TripRecord
from ..utils import to_utc_aware
from .payloads import completion_payload, record_from_payload, stats_from_payload
from .response_handling import classify_response_status
from .session import create_default_session

LOGGER = logging.getLogger(__name__)


class RestTripStore:
    """Trip service API client with retries and a short device-history cache."""

    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session | None = None,
        timeout: int = REQUEST_TIMEOUT,
        max_retries: int = TRIP_STORE_MAX_RETRIES,
        history_ttl: int = HISTORY_CACHE_TTL_SECONDS,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required for RestTripStore")
        self._base_url = base_url.rstrip("/")
        self._session = session or create_default_session()
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._history_cache: TTLCache[str, List[TripRecord]] | None = (
            TTLCache(maxsize=max(1, HISTORY_CACHE_SIZE), ttl=history_ttl)
            if history_ttl > 0
            else None
        )
        self._cache_lock = RLock()

    @property
    def base_url(self) -> str:
        return self._base_url

    def create_trip(self, device_id: str, start_time: datetime) -> str:
        """Open a trip on the service and return its id."""

        data = self._request(
            "POST",
            "/api/trips",
            json={
                "device_id": device_id,
                "start_time": to_utc_aware(start_time).isoformat(),
            },
            context=f"Create trip device={device_id}",
        )
        if not isinstance(data, dict) or not data.get("id"):
            raise TripStoreError("Create trip response is missing 'id'")
        self._invalidate(device_id)
        return str(data["id"])

    def complete_trip(self, record: TripRecord) -> TripRecord:
        """Write the finished trip's statistics; returns the stored record."""

        data = self._request(
            "PUT",
            f"/api/trips/{record.id}",
            json=completion_payload(record),
            context=f"Save trip {record.id}",
        )
        self._invalidate(record.device_id)
        if isinstance(data, dict) and data.get("id"):
            return record_from_payload(data, device_id=record.device_id)
        return record

    def get_trip(self, trip_id: str) -> TripRecord:
        data = self._request("GET", f"/api/trips/{trip_id}", context=f"Trip {trip_id}")
        return record_from_payload(data)

    def list_device_trips(self, device_id: str) -> List[TripRecord]:
        cached = self._cached(device_id)
        if cached is not None:
            LOGGER.debug("History cache hit device=%s", device_id)
            return list(cached)
        data = self._request(
            "GET",
            f"/api/trips/device/{device_id}",
            context=f"Trip history device={device_id}",
        )
        if not isinstance(data, list):
            raise TripStoreError(
                f"Trip history for device={device_id} is not a list"
            )
        records: List[TripRecord] = []
        for item in data:
            try:
                records.append(record_from_payload(item, device_id=device_id))
            except TripStoreError as exc:
                LOGGER.warning(
                    "Skipping malformed trip in history device=%s: %s", device_id, exc
                )
        if self._history_cache is not None:
            with self._cache_lock:
                self._history_cache[device_id] = records
        return list(records)

    def delete_trip(self, trip_id: str, device_id: str | None = None) -> None:
        self._request("DELETE", f"/api/trips/{trip_id}", context=f"Delete trip {trip_id}")
        if device_id:
            self._invalidate(device_id)
        else:
            self._invalidate_all()

    def get_stats(self, device_id: str) -> DriverStats:
        data = self._request(
            "GET", f"/api/stats/{device_id}", context=f"Stats device={device_id}"
        )
        return stats_from_payload(data)

    def _cached(self, device_id: str) -> Optional[List[TripRecord]]:
        if self._history_cache is None:
            return None
        with self._cache_lock:
            return self._history_cache.get(device_id)

    def _invalidate(self, device_id: str) -> None:
        if self._history_cache is None:
            return
        with self._cache_lock:
            self._history_cache.pop(device_id, None)

    def _invalidate_all(self) -> None:
        if self._history_cache is None:
            return
        with self._cache_lock:
            self._history_cache.clear()

    def _request(
        self,
        method: str,
        path: str,
        *,
        context: str,
        json: Any = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        backoff = 1.0
        attempt = 0
        while True:
            attempt += 1
            can_retry = attempt < self._max_retries
            try:
                response = self._session.request(
                    method, url, json=json, timeout=self._timeout
                )
            except requests.RequestException as exc:
                if can_retry:
                    LOGGER.warning(
                        "%s network error attempt=%s err=%s; retrying in %.1fs",
                        context,
                        attempt,
                        exc.__class__.__name__,
                        backoff,
                    )
                    time.sleep(backoff)
                    backoff = min(backoff * 2, TRIP_STORE_BACKOFF_MAX_SECONDS)
                    continue
                message = f"{context} network error: {exc.__class__.__name__}"
                LOGGER.error(message)
                raise TripStoreError(message) from exc

            action, error = classify_response_status(
                response,
                context,
                attempt=attempt,
                backoff=backoff,
                can_retry=can_retry,
            )
            if action == "retry":
                time.sleep(backoff)
                backoff = min(backoff * 2, TRIP_STORE_BACKOFF_MAX_SECONDS)
                continue
            if action == "raise" and error is not None:
                raise error

            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                message = f"{context} returned non-JSON payload"
                LOGGER.error(message)
                raise TripStoreError(message) from exc


__all__ = ["RestTripStore"]
