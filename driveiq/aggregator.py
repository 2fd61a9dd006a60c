"""Trip telemetry aggregation.

Pure, in-memory accumulation of driving statistics from successive location
fixes. ``create`` starts a trip, ``update`` consumes one sample and returns
the classification events it raised, ``finalize`` turns the final state into
a :class:`TripSummary`. None of these perform I/O or log; callers decide how
to present events and where to persist summaries.

Event classification compares each fix only with the immediately preceding
one and assumes a ~1 second cadence, so a dropped fix widens the window the
15 km/h delta is measured over.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .errors import TripFinalizedError
from .geodesy import great_circle_distance_km
from .models import LocationSample, Position, TripEvent, TripEventKind, TripSummary
from .scoring import compute_score
from .utils import round_half_up

MPS_TO_KMH = 3.6
# km/h change between consecutive ~1 s fixes (~4.2 m/s²)
HARD_EVENT_DELTA_KMH = 15
SPEED_LIMIT_KMH = 130


@dataclass(slots=True)
class TripAccumulator:
    """Running state of one trip; owned by a single writer."""

    start_time: datetime
    distance_km: float = 0.0
    max_speed_kmh: int = 0
    speed_samples: List[int] = field(default_factory=list)
    hard_brake_count: int = 0
    hard_accel_count: int = 0
    speeding_count: int = 0
    last_speed_kmh: int = 0
    last_position: Optional[Position] = None
    finalized: bool = False

    @property
    def sample_count(self) -> int:
        return len(self.speed_samples)


def create(start_time: datetime) -> TripAccumulator:
    return TripAccumulator(start_time=start_time)


def speed_kmh_from_mps(speed_mps: float | None) -> int:
    """Convert a raw fix speed to whole km/h.

    Absent, negative and non-finite speeds become 0.
    """

    if speed_mps is None:
        return 0
    speed = float(speed_mps)
    if not math.isfinite(speed):
        return 0
    return round_half_up(max(0.0, speed * MPS_TO_KMH))


def update(acc: TripAccumulator, sample: LocationSample) -> List[TripEvent]:
    """Fold one fix into ``acc`` and return the events it raised.

    Samples must arrive in timestamp order; ordering is not checked here.
    """

    if acc.finalized:
        raise TripFinalizedError("Trip already finalized; no further updates")

    speed_kmh = speed_kmh_from_mps(sample.speed_mps)

    position = sample.position
    if acc.last_position is not None:
        acc.distance_km += great_circle_distance_km(*acc.last_position, *position)
    acc.last_position = position

    if speed_kmh > acc.max_speed_kmh:
        acc.max_speed_kmh = speed_kmh

    acc.speed_samples.append(speed_kmh)

    previous = acc.last_speed_kmh
    delta = previous - speed_kmh
    events: List[TripEvent] = []

    # Opposite signs of the same delta, so at most one of these holds.
    if delta > HARD_EVENT_DELTA_KMH:
        acc.hard_brake_count += 1
        events.append(
            TripEvent(TripEventKind.HARD_BRAKE, sample.timestamp, speed_kmh, previous)
        )
    if -delta > HARD_EVENT_DELTA_KMH:
        acc.hard_accel_count += 1
        events.append(
            TripEvent(TripEventKind.HARD_ACCEL, sample.timestamp, speed_kmh, previous)
        )

    # Speeding is a state: count the crossing into it, not each fix above it.
    if speed_kmh > SPEED_LIMIT_KMH and previous <= SPEED_LIMIT_KMH:
        acc.speeding_count += 1
        events.append(
            TripEvent(TripEventKind.SPEEDING, sample.timestamp, speed_kmh, previous)
        )

    acc.last_speed_kmh = speed_kmh
    return events


def average_speed_kmh(acc: TripAccumulator) -> float:
    if not acc.speed_samples:
        return 0.0
    return sum(acc.speed_samples) / len(acc.speed_samples)


def finalize(acc: TripAccumulator, end_time: datetime) -> TripSummary:
    """Produce the trip summary at full precision and retire ``acc``."""

    if acc.finalized:
        raise TripFinalizedError("Trip already finalized")
    acc.finalized = True

    elapsed_ms = (end_time - acc.start_time).total_seconds() * 1000.0
    return TripSummary(
        start_time=acc.start_time,
        end_time=end_time,
        duration_minutes=elapsed_ms / 60000.0,
        distance_km=acc.distance_km,
        max_speed_kmh=acc.max_speed_kmh,
        avg_speed_kmh=average_speed_kmh(acc),
        hard_brake_count=acc.hard_brake_count,
        hard_accel_count=acc.hard_accel_count,
        speeding_count=acc.speeding_count,
        score=compute_score(
            acc.hard_brake_count, acc.hard_accel_count, acc.speeding_count
        ),
    )


__all__ = [
    "HARD_EVENT_DELTA_KMH",
    "SPEED_LIMIT_KMH",
    "TripAccumulator",
    "average_speed_kmh",
    "create",
    "finalize",
    "speed_kmh_from_mps",
    "update",
]
