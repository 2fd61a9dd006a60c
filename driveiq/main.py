import argparse
import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence

from .config import BACKEND_URL, DEVICE_ID, LOCAL_STORE_DIR
from .errors import DriveIQError
from .feed import TripFeed
from .geodesy import path_length_km
from .models import LocationSample, TripEvent, TripRecord, TripSummary
from .report import write_trip_report
from .scoring import driver_grade, format_duration, score_grade, to_trip_record
from .sources import load_samples
from .trip_store import LocalTripStore, RestTripStore, TripStore


def _setup_logging() -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def build_store() -> TripStore:
    """Trip store wired from configuration; local-only without a backend URL."""

    local = LocalTripStore(LOCAL_STORE_DIR)
    remote = RestTripStore(BACKEND_URL) if BACKEND_URL else None
    if remote is None:
        logging.info("No trip service configured; using local store %s", local.directory)
    return TripStore(local, remote)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"invalid date '{value}', expected YYYY-MM-DD"
        ) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="driveiq", description="Trip telemetry scoring and history tools."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Score a recorded GPX/CSV track")
    replay.add_argument("--track", required=True, help="Path to a .gpx or .csv track")
    replay.add_argument("--device", default=DEVICE_ID, help="Device id for --save")
    replay.add_argument(
        "--save", action="store_true", help="Persist the trip in the trip store"
    )

    history = sub.add_parser("history", help="List stored trips for a device")
    history.add_argument("--device", default=DEVICE_ID)
    history.add_argument("--date", type=_parse_date, default=None)

    stats = sub.add_parser("stats", help="Show aggregate driver statistics")
    stats.add_argument("--device", default=DEVICE_ID)

    sub.add_parser("sync", help="Push locally pending trips to the trip service")

    export = sub.add_parser("export", help="Write the trip history to Excel")
    export.add_argument("--device", default=DEVICE_ID)
    export.add_argument("--out", required=True, help="Output .xlsx path")
    return parser


def _require_device(device_id: str) -> str:
    if not device_id:
        raise DriveIQError("A device id is required (--device or DRIVEIQ_DEVICE_ID)")
    return device_id


def _print_summary(summary: TripSummary) -> None:
    print(f"Duration:           {format_duration(summary.duration_minutes)}")
    print(f"Distance:           {summary.distance_km:.2f} km")
    print(f"Max speed:          {summary.max_speed_kmh} km/h")
    print(f"Average speed:      {summary.avg_speed_kmh:.1f} km/h")
    print(f"Hard brakes:        {summary.hard_brake_count}")
    print(f"Hard accelerations: {summary.hard_accel_count}")
    print(f"Speeding:           {summary.speeding_count}")
    print(f"Score:              {summary.score} ({score_grade(summary.score)})")


def _print_trips(records: Sequence[TripRecord]) -> None:
    if not records:
        print("No trips found.")
        return
    for record in records:
        pending = " [pending sync]" if record.pending_sync else ""
        print(
            f"{record.start_time.isoformat()}  {record.distance_km:6.2f} km  "
            f"{format_duration(record.duration_minutes):>8}  "
            f"score {record.score:3d} ({score_grade(record.score)}){pending}"
        )


def _replay(samples: List[LocationSample], name: str) -> TripSummary:
    if not samples:
        raise DriveIQError(f"Track {name} contains no usable samples")

    def _on_event(event: TripEvent) -> None:
        print(
            f"{event.timestamp.isoformat()}  {event.kind.value}: "
            f"{event.previous_speed_kmh} -> {event.speed_kmh} km/h"
        )

    feed = TripFeed(samples[0].timestamp, on_event=_on_event, name=name)
    try:
        for sample in samples:
            feed.submit(sample)
    except DriveIQError:
        feed.abandon()
        raise
    return feed.stop(samples[-1].timestamp)


def _cmd_replay(args: argparse.Namespace) -> None:
    samples = load_samples(args.track)
    logging.info(
        "Track covers %.2f km over %d fixes",
        path_length_km([sample.position for sample in samples]),
        len(samples),
    )
    summary = _replay(samples, name=str(args.track))
    _print_summary(summary)
    if not args.save:
        return
    device_id = _require_device(args.device)
    store = build_store()
    trip_id = store.start_trip(device_id, summary.start_time)
    record = store.save_trip(to_trip_record(summary, trip_id, device_id))
    state = "pending sync" if record.pending_sync else "saved"
    print(f"Trip {record.id} {state}.")


def _cmd_history(args: argparse.Namespace) -> None:
    device_id = _require_device(args.device)
    records = build_store().list_trips(device_id, on_date=args.date)
    _print_trips(records)


def _cmd_stats(args: argparse.Namespace) -> None:
    device_id = _require_device(args.device)
    stats = build_store().driver_stats(device_id)
    print(f"Total trips:    {stats.total_trips}")
    print(f"Total distance: {stats.total_distance:.2f} km")
    print(f"Average score:  {stats.average_score:.1f}")
    print(f"Best score:     {stats.best_score}")
    if stats.total_trips:
        print(f"Driver grade:   {driver_grade(stats.average_score)}")


def _cmd_sync(args: argparse.Namespace) -> None:
    store = build_store()
    if store.remote is None:
        raise DriveIQError("No trip service configured (set DRIVEIQ_BACKEND_URL)")
    pending = len(store.local.pending())
    synced = store.sync_pending()
    print(f"Synced {synced} of {pending} pending trips.")


def _cmd_export(args: argparse.Namespace) -> None:
    device_id = _require_device(args.device)
    records = build_store().list_trips(device_id)
    path = write_trip_report(args.out, records, device_id=device_id)
    print(f"Wrote {len(records)} trips to {path}")


_COMMANDS = {
    "replay": _cmd_replay,
    "history": _cmd_history,
    "stats": _cmd_stats,
    "sync": _cmd_sync,
    "export": _cmd_export,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    _setup_logging()
    args = _build_parser().parse_args(argv)
    started = datetime.now(timezone.utc)
    try:
        _COMMANDS[args.command](args)
    except DriveIQError as exc:
        logging.error("%s failed: %s", args.command, exc)
        return 1
    logging.debug(
        "%s finished in %.2fs",
        args.command,
        (datetime.now(timezone.utc) - started).total_seconds(),
    )
    return 0
