"""Serialized sample intake for a trip being tracked.

A :class:`TripFeed` owns the trip's accumulator. Any number of sample sources
(a foreground location observer, a background task runner) may call
:meth:`TripFeed.submit` from their own threads; samples are queued and applied
by a single worker thread in arrival order, so the accumulator only ever has
one writer and the same fix is never counted twice through two paths.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Tuple

from . import aggregator
from .config import FEED_LOG_EVENTS, FEED_STOP_TIMEOUT_SECONDS
from .errors import DriveIQError, TripFinalizedError
from .models import LocationSample, TripEvent, TripSummary

EventListener = Callable[[TripEvent], None]
_QueueItem = Tuple[str, LocationSample] | None

FOREGROUND = "foreground"
BACKGROUND = "background"


@dataclass(frozen=True, slots=True)
class FeedSnapshot:
    """Live running figures for display while tracking."""

    distance_km: float
    current_speed_kmh: int
    max_speed_kmh: int
    hard_brakes: int
    hard_accelerations: int
    speeding_count: int
    samples: int
    samples_by_source: Dict[str, int]
    failed_samples: int = 0


class TripFeed:
    """Single-writer owner of a trip accumulator."""

    def __init__(
        self,
        start_time: datetime,
        *,
        on_event: EventListener | None = None,
        name: str = "trip",
    ) -> None:
        self._log = logging.getLogger(self.__class__.__name__)
        self._name = name
        self._acc = aggregator.create(start_time)
        self._queue: "queue.Queue[_QueueItem]" = queue.Queue()
        self._listeners: List[EventListener] = [on_event] if on_event else []
        self._state_lock = threading.Lock()
        self._closed = False
        self._summary: TripSummary | None = None
        self._source_counts: Counter[str] = Counter()
        self._events: List[TripEvent] = []
        self._failed_samples = 0
        self._worker = threading.Thread(
            target=self._run, name=f"TripFeed-{name}", daemon=True
        )
        self._worker.start()
        self._log.info("Trip %s started at %s", name, start_time.isoformat())

    @property
    def start_time(self) -> datetime:
        return self._acc.start_time

    @property
    def closed(self) -> bool:
        with self._state_lock:
            return self._closed

    def add_listener(self, listener: EventListener) -> None:
        with self._state_lock:
            self._listeners.append(listener)

    def submit(self, sample: LocationSample, source: str = FOREGROUND) -> None:
        """Queue a fix for the worker. Safe to call from any thread."""

        with self._state_lock:
            if self._closed:
                raise TripFinalizedError(
                    f"Trip {self._name} is no longer accepting samples"
                )
            self._queue.put((source, sample))

    def events(self) -> List[TripEvent]:
        """Return the events raised so far, oldest first."""

        with self._state_lock:
            return list(self._events)

    def snapshot(self) -> FeedSnapshot:
        with self._state_lock:
            acc = self._acc
            return FeedSnapshot(
                distance_km=acc.distance_km,
                current_speed_kmh=acc.last_speed_kmh,
                max_speed_kmh=acc.max_speed_kmh,
                hard_brakes=acc.hard_brake_count,
                hard_accelerations=acc.hard_accel_count,
                speeding_count=acc.speeding_count,
                samples=acc.sample_count,
                samples_by_source=dict(self._source_counts),
                failed_samples=self._failed_samples,
            )

    def stop(self, end_time: datetime) -> TripSummary:
        """Drain queued samples, stop the worker and finalize the trip once."""

        self._close()
        self._join()
        with self._state_lock:
            if self._summary is not None or self._acc.finalized:
                raise TripFinalizedError(f"Trip {self._name} already stopped")
            summary = aggregator.finalize(self._acc, end_time)
            self._summary = summary
            failed = self._failed_samples
        if failed:
            raise DriveIQError(
                f"Trip {self._name} lost {failed} sample(s); summary is incomplete"
            )
        self._log.info(
            "Trip %s finished: %.2f km in %.1f min, score=%d (samples=%d)",
            self._name,
            summary.distance_km,
            summary.duration_minutes,
            summary.score,
            sum(self._source_counts.values()),
        )
        return summary

    def abandon(self) -> None:
        """Stop tracking without producing a summary."""

        self._close()
        self._join()
        with self._state_lock:
            self._acc.finalized = True
        self._log.info("Trip %s abandoned", self._name)

    def _close(self) -> None:
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(None)

    def _join(self) -> None:
        self._worker.join(timeout=FEED_STOP_TIMEOUT_SECONDS)
        if self._worker.is_alive():
            raise DriveIQError(
                f"Trip {self._name} worker did not drain within "
                f"{FEED_STOP_TIMEOUT_SECONDS:.1f}s"
            )

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                source, sample = item
                with self._state_lock:
                    try:
                        raised = aggregator.update(self._acc, sample)
                    except Exception as exc:  # keep draining; stop() reports the loss
                        self._failed_samples += 1
                        self._log.error(
                            "Trip %s dropped %s sample at %s: %s",
                            self._name,
                            source,
                            sample.timestamp.isoformat(),
                            exc,
                            exc_info=True,
                        )
                        continue
                    self._source_counts[source] += 1
                    self._events.extend(raised)
                    listeners = list(self._listeners)
                for event in raised:
                    self._dispatch(event, listeners)
            finally:
                self._queue.task_done()

    def _dispatch(self, event: TripEvent, listeners: List[EventListener]) -> None:
        if FEED_LOG_EVENTS:
            self._log.info(
                "Trip %s %s at %s: %d -> %d km/h",
                self._name,
                event.kind.value,
                event.timestamp.isoformat(),
                event.previous_speed_kmh,
                event.speed_kmh,
            )
        for listener in listeners:
            try:
                listener(event)
            except Exception as exc:  # listener faults must not stop intake
                self._log.error(
                    "Trip %s event listener failed for %s: %s",
                    self._name,
                    event.kind.value,
                    exc,
                    exc_info=True,
                )


__all__ = ["BACKGROUND", "FOREGROUND", "FeedSnapshot", "TripFeed"]
