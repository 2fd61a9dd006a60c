"""Trip history filtering and aggregate driver statistics.

Pure transformations over stored :class:`TripRecord` values: no I/O, so the
trip store facade, the CLI and the Excel report share one set of numbers.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime, tzinfo
from typing import Iterable, List, Sequence

import pandas as pd

from .models import DriverStats, TripRecord
from .utils import round_half_up, round_to, to_utc_aware

TRIP_COLUMNS = [
    "id",
    "device_id",
    "start_time",
    "end_time",
    "distance_km",
    "duration_minutes",
    "max_speed",
    "avg_speed",
    "hard_brakes",
    "hard_accelerations",
    "speeding_count",
    "score",
    "pending_sync",
]


def _local_date(dt: datetime, tz: tzinfo | None) -> date:
    return to_utc_aware(dt).astimezone(tz).date()


def trips_frame(records: Iterable[TripRecord]) -> pd.DataFrame:
    """Return records as a DataFrame, newest trip first."""

    df = pd.DataFrame([asdict(record) for record in records], columns=TRIP_COLUMNS)
    if df.empty:
        return df
    return df.sort_values("start_time", ascending=False, kind="stable").reset_index(
        drop=True
    )


def filter_trips(
    records: Iterable[TripRecord],
    *,
    device_id: str | None = None,
    on_date: date | None = None,
    since: datetime | None = None,
    tz: tzinfo | None = None,
) -> List[TripRecord]:
    """Keep trips matching every given filter, newest first.

    ``on_date`` is matched against the trip's start date in ``tz`` (system
    local time when omitted).
    """

    since_utc = to_utc_aware(since) if since is not None else None
    kept = [
        record
        for record in records
        if (device_id is None or record.device_id == device_id)
        and (on_date is None or _local_date(record.start_time, tz) == on_date)
        and (since_utc is None or to_utc_aware(record.start_time) >= since_utc)
    ]
    kept.sort(key=lambda record: to_utc_aware(record.start_time), reverse=True)
    return kept


def driver_stats(records: Sequence[TripRecord]) -> DriverStats:
    df = trips_frame(records)
    if df.empty:
        return DriverStats()
    return DriverStats(
        total_trips=int(len(df)),
        total_distance=round_to(float(df["distance_km"].sum()), 2),
        average_score=round_to(float(df["score"].mean()), 1),
        best_score=int(df["score"].max()),
    )


def today_score(
    records: Iterable[TripRecord], now: datetime, tz: tzinfo | None = None
) -> int | None:
    """Rounded mean score of trips started on ``now``'s date, or None."""

    today = _local_date(now, tz)
    todays = filter_trips(records, on_date=today, tz=tz)
    if not todays:
        return None
    mean = sum(record.score for record in todays) / len(todays)
    return round_half_up(mean)


__all__ = ["driver_stats", "filter_trips", "today_score", "trips_frame"]
