from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

Position = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class LocationSample:
    timestamp: datetime
    latitude: float
    longitude: float
    # Advisory; None or negative values mean "no valid speed"
    speed_mps: Optional[float] = None

    @property
    def position(self) -> Position:
        return (self.latitude, self.longitude)


class TripEventKind(str, Enum):
    HARD_BRAKE = "hard-brake"
    HARD_ACCEL = "hard-accel"
    SPEEDING = "speeding"


@dataclass(frozen=True, slots=True)
class TripEvent:
    kind: TripEventKind
    timestamp: datetime
    speed_kmh: int
    previous_speed_kmh: int


@dataclass(frozen=True, slots=True)
class TripSummary:
    start_time: datetime
    end_time: datetime
    duration_minutes: float
    distance_km: float
    max_speed_kmh: int
    avg_speed_kmh: float
    hard_brake_count: int
    hard_accel_count: int
    speeding_count: int
    score: int


@dataclass(slots=True)
class TripRecord:
    id: str
    device_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    distance_km: float = 0.0
    duration_minutes: float = 0.0
    max_speed: int = 0
    avg_speed: float = 0.0
    hard_brakes: int = 0
    hard_accelerations: int = 0
    speeding_count: int = 0
    score: int = 100
    # Set while the record only exists in the local store
    pending_sync: bool = False


@dataclass(frozen=True, slots=True)
class DriverStats:
    total_trips: int = 0
    total_distance: float = 0.0
    average_score: float = 0.0
    best_score: int = 0
